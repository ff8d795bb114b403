"""
Тесты метрик табелей: заполнение, дневные сводки и переключение контекста
"""

import uuid
from datetime import date, datetime, timedelta

import pytest

from alert_engine.metrics.compliance import (
    compliance_start_day,
    first_missing_date,
    rollup_timesheets,
)
from alert_engine.metrics.context_switch import context_switch_report
from alert_engine.schemas.snapshots import TimesheetSnapshot

EMAIL = "dev@example.com"


def entry(day, minutes=480, status="approved", project_id=None, work_type="development", created_at=None):
    return TimesheetSnapshot(
        user_email=EMAIL,
        project_id=project_id or uuid.uuid4(),
        date=day,
        total_minutes=minutes,
        work_type=work_type,
        status=status,
        created_at=created_at,
    )


def full_month(until: date) -> dict[date, int]:
    day = until.replace(day=1)
    minutes = {}
    while day <= until:
        minutes[day] = 480
        day += timedelta(days=1)
    return minutes


class TestCompliance:
    """Тесты поиска незаполненного дня"""

    def test_start_day_before_cutoff(self):
        """До 18:00 проверка начинается со вчерашнего дня"""
        assert compliance_start_day(datetime(2026, 3, 18, 17, 59)) == date(2026, 3, 17)
        assert compliance_start_day(datetime(2026, 3, 18, 18, 0)) == date(2026, 3, 18)

    def test_all_days_filled(self):
        moment = datetime(2026, 3, 18, 12, 0)
        assert first_missing_date(full_month(date(2026, 3, 17)), moment) is None

    def test_walks_back_to_first_gap(self):
        """Возвращается ближайший к сегодняшнему дню пропуск"""
        minutes = full_month(date(2026, 3, 17))
        minutes[date(2026, 3, 10)] = 240
        minutes[date(2026, 3, 4)] = 0
        assert first_missing_date(minutes, datetime(2026, 3, 18, 12, 0)) == date(2026, 3, 10)

    def test_sundays_skipped(self):
        """Воскресенье не требует записей"""
        minutes = full_month(date(2026, 3, 17))
        del minutes[date(2026, 3, 15)]
        assert first_missing_date(minutes, datetime(2026, 3, 18, 12, 0)) is None

    def test_first_day_of_month_before_cutoff(self):
        """Первого числа до 18:00 проверять нечего"""
        assert first_missing_date({}, datetime(2026, 4, 1, 9, 0)) is None

    def test_after_cutoff_today_is_checked(self):
        minutes = full_month(date(2026, 3, 17))
        assert first_missing_date(minutes, datetime(2026, 3, 18, 19, 0)) == date(2026, 3, 18)


class TestRollup:
    """Тесты дневных сводок"""

    def test_rollup_excludes_rejected(self):
        day = date(2026, 3, 17)
        rollups = rollup_timesheets(
            [
                entry(day, 300, created_at=datetime(2026, 3, 17, 9)),
                entry(day, 180, status="pending_pm", work_type="rework", created_at=datetime(2026, 3, 17, 15)),
                entry(day, 60, status="rejected"),
            ]
        )
        rollup = rollups[day]
        assert rollup.total_minutes == 480
        assert rollup.rework_minutes == 180
        assert rollup.status == "submitted"
        assert rollup.work_type == "rework"

    def test_draft_day(self):
        day = date(2026, 3, 16)
        rollups = rollup_timesheets([entry(day, 120, status="draft")])
        assert rollups[day].status == "draft"

    def test_only_rejected_day_absent(self):
        assert rollup_timesheets([entry(date(2026, 3, 16), status="rejected")]) == {}


class TestContextSwitch:
    """Тесты частоты переключения контекста"""

    @pytest.fixture
    def today(self):
        return date(2026, 3, 18)

    def day_entries(self, day, projects):
        return [entry(day, 60) for _ in range(projects)]

    def test_two_busy_days_flagged(self, today):
        entries = self.day_entries(today - timedelta(days=1), 6) + self.day_entries(
            today - timedelta(days=3), 7
        )
        report = context_switch_report(entries, today)
        assert report.flagged
        assert report.high_switch_days == (today - timedelta(days=3), today - timedelta(days=1))
        assert "2026-03-17: 6 projects" in report.describe()

    def test_one_busy_day_not_flagged(self, today):
        entries = self.day_entries(today, 6) + self.day_entries(today - timedelta(days=1), 5)
        assert not context_switch_report(entries, today).flagged

    def test_same_project_counted_once(self, today):
        project_id = uuid.uuid4()
        entries = [entry(today, 30, project_id=project_id) for _ in range(10)]
        assert context_switch_report(entries, today).projects_per_day == {today: 1}

    def test_entries_outside_window_ignored(self, today):
        old = self.day_entries(today - timedelta(days=8), 6) + self.day_entries(
            today - timedelta(days=9), 6
        )
        assert not context_switch_report(old, today).flagged
