"""
Тесты заданий по табелям
"""

import uuid
from datetime import date, datetime, timedelta

import pytest_asyncio

from alert_engine.jobs.context_switching import ContextSwitchingJob
from alert_engine.jobs.pending_timesheets import PendingTimesheetsJob
from alert_engine.jobs.timesheet_compliance import TimesheetComplianceJob
from alert_engine.jobs.timesheet_rollup import TimesheetRollupJob
from alert_engine.models.notification import Notification, NotificationStatus, RuleTag
from alert_engine.models.timesheet import TimesheetStatus, UserTimesheet
from alert_engine.models.user import CustomRole, UserRole
from tests.factories import (
    ProjectFactory,
    ProjectUserRoleFactory,
    TimesheetFactory,
    UserFactory,
)


def month_entries(email, until: date, skip=(), minutes=480):
    """Записи по 8 часов за каждый рабочий день месяца до until"""
    entries = []
    day = until.replace(day=1)
    while day <= until:
        if day.weekday() != 6 and day not in skip:
            entries.append(TimesheetFactory(user_email=email, date=day, total_minutes=minutes))
        day += timedelta(days=1)
    return entries


class TestPendingTimesheetsJob:
    """Тесты напоминаний о зависших табелях"""

    @pytest_asyncio.fixture
    async def setup(self, persist, now):
        dev = UserFactory(email="dev@example.com")
        other = UserFactory(email="other@example.com")
        pm = UserFactory(email="pm@example.com")
        project = ProjectFactory()
        await persist(dev, other, pm, project)
        old = now - timedelta(days=8)
        await persist(
            ProjectUserRoleFactory.for_user(project, pm),
            TimesheetFactory(user_email=dev.email, project_id=project.id, status=TimesheetStatus.PENDING_PM, created_at=old),
            TimesheetFactory(
                user_email=dev.email, project_id=project.id, status=TimesheetStatus.PENDING_PM, created_at=old
            ),
            TimesheetFactory(
                user_email=dev.email,
                project_id=project.id,
                status=TimesheetStatus.PENDING_PM,
                created_at=now - timedelta(days=1),
            ),
            TimesheetFactory(
                user_email=other.email,
                date=date(2026, 3, 5),
                status=TimesheetStatus.PENDING_ADMIN,
                created_at=now - timedelta(days=10),
            ),
            TimesheetFactory(user_email=other.email, status=TimesheetStatus.APPROVED, created_at=old),
        )
        return {"dev": dev, "other": other, "pm": pm}

    async def test_stale_and_backlog_alerts(self, make_job, setup, fetch):
        report = await make_job(PendingTimesheetsJob).run()

        assert report.scope_size == 3
        assert report.created == 3

        stale = {
            n.recipient_email: n
            for n in await fetch(Notification, Notification.type == RuleTag.PENDING_TIMESHEET.value)
        }
        assert stale["dev@example.com"].message.startswith(
            "You have 2 timesheets that have been pending for over 7 days"
        )
        assert stale["other@example.com"].message.startswith("Your timesheet for 2026-03-05")

        [backlog] = await fetch(Notification, Notification.type == RuleTag.PM_APPROVAL_BACKLOG.value)
        assert backlog.recipient_email == "pm@example.com"
        assert backlog.message.startswith("You have 3 timesheet entries waiting for your approval")
        assert backlog.category == "general"

    async def test_once_per_local_day(self, make_job, setup, now):
        await make_job(PendingTimesheetsJob).run()
        report = await make_job(PendingTimesheetsJob, now=now + timedelta(hours=4)).run()

        assert report.created == 0
        assert report.suppressed == 3


class TestContextSwitchingJob:
    """Тесты оповещений о переключении контекста"""

    async def test_flagged_user(self, persist, make_job, fetch, now):
        switcher = UserFactory(email="switcher@example.com")
        focused = UserFactory(email="focused@example.com")
        today = now.date()
        await persist(
            switcher,
            focused,
            *[TimesheetFactory(user_email=switcher.email, date=today - timedelta(days=1), total_minutes=60) for _ in range(6)],
            *[TimesheetFactory(user_email=switcher.email, date=today - timedelta(days=2), total_minutes=60) for _ in range(6)],
            *[TimesheetFactory(user_email=focused.email, date=today, total_minutes=60) for _ in range(6)],
        )

        report = await make_job(ContextSwitchingJob).run()
        repeat = await make_job(ContextSwitchingJob, now=now + timedelta(hours=1)).run()

        [alert] = await fetch(Notification)
        assert alert.recipient_email == "switcher@example.com"
        assert alert.type == RuleTag.CONTEXT_SWITCHING.value
        assert alert.rule_id == "FREQUENT_CONTEXT_SWITCHING"
        assert report.created == 1
        assert repeat.suppressed == 1


class TestTimesheetComplianceJob:
    """Тесты контроля заполнения табеля"""

    async def test_missing_day_alert(self, persist, make_job, fetch, email_service, now):
        """Оповещение о ближайшем незаполненном дне с письмом"""
        gap = UserFactory(email="gap@example.com", full_name="Gale Gap")
        full = UserFactory(email="full@example.com")
        admin = UserFactory(email="admin@example.com", role=UserRole.ADMIN)
        admin_pm = UserFactory(
            email="admin-pm@example.com", role=UserRole.ADMIN, custom_role=CustomRole.PROJECT_MANAGER
        )
        yesterday = now.date() - timedelta(days=1)
        await persist(
            gap,
            full,
            admin,
            admin_pm,
            *month_entries(gap.email, yesterday, skip={date(2026, 3, 10)}),
            TimesheetFactory(user_email=gap.email, date=date(2026, 3, 10), total_minutes=240),
            TimesheetFactory(
                user_email=gap.email, date=date(2026, 3, 10), total_minutes=240, status=TimesheetStatus.REJECTED
            ),
            *month_entries(full.email, yesterday),
        )

        report = await make_job(TimesheetComplianceJob).run()

        assert report.scope_size == 3
        alerts = {n.recipient_email: n for n in await fetch(Notification)}
        assert set(alerts) == {"gap@example.com", "admin-pm@example.com"}
        assert alerts["gap@example.com"].message.startswith("Mandatory: 8 hours required for 2026-03-10.")
        assert alerts["admin-pm@example.com"].message.startswith("Mandatory: 8 hours required for 2026-03-17.")
        assert alerts["gap@example.com"].link == "/Timesheets"

        sent = {call.args[0]: call.args[2] for call in email_service.send_templated_email.await_args_list}
        assert sent["gap@example.com"]["missing_date"] == date(2026, 3, 10)
        assert sent["gap@example.com"]["logged_minutes"] == 240

    async def test_alert_resolved_after_fill(self, persist, make_job, fetch, now):
        gap = UserFactory(email="gap@example.com")
        yesterday = now.date() - timedelta(days=1)
        await persist(gap, *month_entries(gap.email, yesterday, skip={yesterday}))

        await make_job(TimesheetComplianceJob).run()
        await persist(TimesheetFactory(user_email=gap.email, date=yesterday))
        report = await make_job(TimesheetComplianceJob).run()

        assert report.resolved == 1
        [notification] = await fetch(Notification)
        assert notification.status == NotificationStatus.RESOLVED

    async def test_repeat_updates_open_alert(self, persist, make_job, fetch, email_service, now):
        gap = UserFactory(email="gap@example.com")
        await persist(gap)

        await make_job(TimesheetComplianceJob).run()
        report = await make_job(TimesheetComplianceJob, now=now + timedelta(hours=8)).run()

        assert report.updated == 1
        [notification] = await fetch(Notification)
        # После 18:00 проверяется и текущий день
        assert "2026-03-18" in notification.message
        assert email_service.send_templated_email.await_count == 1


class TestTimesheetRollupJob:
    """Тесты дневных сводок"""

    async def test_rollup_upsert(self, persist, make_job, fetch, now):
        dev = UserFactory(email="dev@example.com")
        project_id = uuid.uuid4()
        await persist(
            dev,
            TimesheetFactory(user_email=dev.email, project_id=project_id, date=date(2026, 3, 17), total_minutes=300),
            TimesheetFactory(
                user_email=dev.email,
                date=date(2026, 3, 17),
                total_minutes=180,
                work_type="rework",
                status=TimesheetStatus.PENDING_PM,
                created_at=datetime(2026, 3, 17, 18, 0),
            ),
            TimesheetFactory(
                user_email=dev.email, date=date(2026, 3, 17), total_minutes=60, status=TimesheetStatus.REJECTED
            ),
            TimesheetFactory(
                user_email=dev.email, date=date(2026, 3, 16), total_minutes=120, status=TimesheetStatus.DRAFT
            ),
        )

        await make_job(TimesheetRollupJob).run()
        await make_job(TimesheetRollupJob, now=now + timedelta(hours=1)).run()

        rows = {r.timesheet_date: r for r in await fetch(UserTimesheet)}
        assert len(rows) == 2
        submitted = rows[date(2026, 3, 17)]
        assert submitted.total_time_submitted_in_day == 480
        assert submitted.rework_time_in_day == 180
        assert submitted.status == "submitted"
        assert submitted.work_type == "rework"
        assert submitted.user_id == dev.id
        assert submitted.actual_date == now + timedelta(hours=1)
        assert rows[date(2026, 3, 16)].status == "draft"
