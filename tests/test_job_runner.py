"""
Тесты базового задания и точки входа процесса
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from alert_engine.exceptions import ScopeFetchError
from alert_engine.jobs import JOBS
from alert_engine.jobs.base import JobReport, RuleJob, build_parser, run_job_main
from alert_engine.jobs.sprint_overdue_ratio import SprintOverdueRatioJob
from alert_engine.jobs.task_overdue import TaskOverdueJob
from alert_engine.logging.jobs import JobLogger


class FlakyJob(RuleJob[int]):
    """Задание, падающее на одном элементе"""

    name = "flaky"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.seen: list[int] = []

    async def fetch_scope(self):
        return [1, 2, 3]

    def item_subject_id(self, item):
        return None

    async def process_item(self, item):
        if item == 2:
            raise ValueError("broken item")
        self.seen.append(item)


class BrokenScopeJob(RuleJob[int]):
    name = "broken_scope"

    async def fetch_scope(self):
        raise RuntimeError("database unavailable")


class TestRuleJob:
    """Тесты прохода задания"""

    async def test_item_failure_is_isolated(self, db_session, now, caplog):
        """Ошибка элемента логируется, остальные элементы обрабатываются"""
        job = FlakyJob(db_session, now=now)

        with caplog.at_level(logging.ERROR, logger="alert_engine.jobs.flaky"):
            report = await job.run()

        assert job.seen == [1, 3]
        assert report.scope_size == 3
        assert report.processed == 2
        assert report.failed == 1
        assert "Ошибка обработки элемента 2" in caplog.text

    async def test_scope_failure_raises(self, db_session, now):
        with pytest.raises(ScopeFetchError) as exc_info:
            await BrokenScopeJob(db_session, now=now).run()
        assert exc_info.value.job == "broken_scope"
        assert exc_info.value.error_code == "SCOPE_FETCH_FAILED"

    async def test_empty_scope_is_success(self, make_job):
        report = await make_job(TaskOverdueJob).run()
        assert report == JobReport()

    def test_finished_log_context(self, caplog):
        """Итоги прохода попадают в контекст записи лога"""
        with caplog.at_level(logging.INFO, logger="alert_engine.jobs.task_overdue"):
            JobLogger("task_overdue").log_job_finished(
                processed=3, failed=1, created=2, updated=1, suppressed=0
            )

        [record] = caplog.records
        assert record.created_count == 2
        assert record.job == "task_overdue"


class TestJobEntryPoint:
    """Тесты точки входа процесса"""

    def test_registry_contains_all_jobs(self):
        assert set(JOBS) == {
            "task_overdue",
            "sprint_overdue_ratio",
            "low_workload",
            "overallocation",
            "pending_timesheets",
            "context_switching",
            "timesheet_compliance",
            "trial_expiry",
            "consistent_compliance",
            "sprint_velocity_sync",
            "low_velocity",
            "timesheet_rollup",
            "rework_alarm",
            "overwork",
            "timesheet_lockout",
            "low_logged_hours",
            "utilization",
            "team_utilization",
            "deadline_risk",
        }

    def test_force_flag_only_where_supported(self):
        assert build_parser(SprintOverdueRatioJob).parse_args(["--force"]).force
        with pytest.raises(SystemExit):
            build_parser(TaskOverdueJob).parse_args(["--force"])

    def test_exit_code_success(self):
        with patch("alert_engine.jobs.base._run_job", new=AsyncMock(return_value=JobReport())) as run:
            assert run_job_main(SprintOverdueRatioJob, ["--force"]) == 0
        run.assert_awaited_once_with(SprintOverdueRatioJob, True)

    def test_exit_code_scope_failure(self):
        failure = AsyncMock(side_effect=ScopeFetchError("no database", job="task_overdue"))
        with patch("alert_engine.jobs.base._run_job", new=failure):
            assert run_job_main(TaskOverdueJob, []) == 1

    def test_exit_code_unexpected_error(self):
        failure = AsyncMock(side_effect=RuntimeError("boom"))
        with patch("alert_engine.jobs.base._run_job", new=failure):
            assert run_job_main(TaskOverdueJob, []) == 1
