"""
Тесты фактической загрузки, пропусков табеля и прогноза срока
"""

import uuid
from datetime import date, datetime, timedelta

from hypothesis import given
from hypothesis import strategies as st

from alert_engine.metrics.compliance import missing_submission_days
from alert_engine.metrics.forecast import (
    average_velocity,
    forecast_deadline,
    remaining_story_points,
)
from alert_engine.metrics.utilization import (
    TeamUtilization,
    average_utilization,
    daily_available_minutes,
    idle_percent,
    last_working_days,
    parse_working_days,
    rework_share,
    team_capacity_hours,
)
from alert_engine.metrics.workload import planned_week_hours
from alert_engine.schemas.snapshots import DailyTimesheetSnapshot, StorySnapshot, TaskSnapshot

TODAY = date(2026, 3, 18)  # среда
WEEK_START = datetime(2026, 3, 16)
WEEK_END = WEEK_START + timedelta(days=7)
TODAY_START = datetime(2026, 3, 18)


def make_day(day, total, rework=0) -> DailyTimesheetSnapshot:
    return DailyTimesheetSnapshot(
        user_email="dev@example.com",
        timesheet_date=day,
        status="submitted",
        total_time_submitted_in_day=total,
        rework_time_in_day=rework,
    )


class TestReworkShare:
    """Тесты доли переделок"""

    def test_share_over_days(self):
        share = rework_share([make_day(TODAY, 480, 120), make_day(TODAY, 480, 0)])
        assert share.total_minutes == 960
        assert share.percent == 12.5

    def test_no_time_logged(self):
        assert rework_share([]).percent == 0.0
        assert rework_share([make_day(TODAY, None, None)]).rework_minutes == 0


class TestWorkingDays:
    """Тесты рабочих дней сотрудника"""

    def test_default_is_monday_to_saturday(self):
        assert parse_working_days(None) == frozenset(range(6))
        assert parse_working_days([]) == frozenset(range(6))

    def test_short_and_full_names(self):
        assert parse_working_days(["Mon", " tuesday ", "FRI"]) == frozenset({0, 1, 4})

    def test_unknown_names_give_no_days(self):
        assert parse_working_days(["someday"]) == frozenset()

    def test_last_working_days_skip_sunday(self):
        days = last_working_days(TODAY, parse_working_days(None), 3)
        assert days == [date(2026, 3, 17), date(2026, 3, 16), date(2026, 3, 14)]

    def test_search_is_bounded(self):
        assert last_working_days(TODAY, frozenset(), 3) == []
        assert len(last_working_days(TODAY, frozenset({0}), 30, limit=14)) == 2

    @given(
        weekdays=st.frozensets(st.integers(min_value=0, max_value=6), min_size=1),
        count=st.integers(min_value=0, max_value=30),
    )
    def test_days_are_working_and_descending(self, weekdays, count):
        """Только рабочие дни, строго до сегодня, от новых к старым"""
        days = last_working_days(TODAY, weekdays, count)
        assert len(days) <= count
        assert all(day.weekday() in weekdays and day < TODAY for day in days)
        assert days == sorted(days, reverse=True)


class TestUtilization:
    """Тесты простоя и средней загрузки"""

    def test_idle_percent(self):
        available = daily_available_minutes(8)
        assert idle_percent(360, available) == 25.0
        assert idle_percent(0, available) == 100.0
        assert idle_percent(0, 0) == 0.0

    def test_default_availability(self):
        assert daily_available_minutes(None) == 480

    def test_average_counts_missing_days_as_zero(self):
        days = [date(2026, 3, 17), date(2026, 3, 16)]
        assert average_utilization({date(2026, 3, 17): 480}, days, 480) == 50.0
        assert average_utilization({}, [], 480) == 0.0

    def test_team_capacity(self):
        """Дни * 5/7 * часы в день каждого участника"""
        assert team_capacity_hours([8, None], 7) == 80.0
        assert TeamUtilization(days=7, capacity_hours=80.0, logged_hours=60.0).percent == 75.0
        assert TeamUtilization(days=7, capacity_hours=0.0, logged_hours=5.0).percent == 0.0


class TestMissingSubmissions:
    """Тесты пропусков отправки табеля"""

    def test_sunday_not_checked(self):
        missing = missing_submission_days({date(2026, 3, 17), date(2026, 3, 16)}, TODAY)
        assert missing == [
            date(2026, 3, 14),
            date(2026, 3, 13),
            date(2026, 3, 12),
            date(2026, 3, 11),
        ]

    def test_today_not_in_window(self):
        assert TODAY not in missing_submission_days(set(), TODAY)
        assert len(missing_submission_days(set(), TODAY)) == 6


class TestPlannedWeekHours:
    """Тесты плана недели для контроля переработки"""

    def make_task(self, hours, due=None, status="todo"):
        return TaskSnapshot(
            id=uuid.uuid4(),
            assignees=["dev@example.com"],
            estimated_hours=hours,
            due_date=due,
            status=status,
        )

    def test_relevant_tasks(self):
        tasks = [
            self.make_task(10, due=datetime(2026, 3, 20)),
            self.make_task(20, status="In_Progress"),
            self.make_task(40, due=datetime(2026, 3, 17), status="in_progress"),
            self.make_task(50, due=datetime(2026, 3, 25)),
            self.make_task(60, due=datetime(2026, 3, 19), status="done"),
            self.make_task(None, due=datetime(2026, 3, 19)),
        ]
        assert planned_week_hours("Dev@Example.com", tasks, WEEK_START, WEEK_END, TODAY_START) == 30

    def test_other_assignee_ignored(self):
        tasks = [self.make_task(10, due=datetime(2026, 3, 20))]
        assert planned_week_hours("qa@example.com", tasks, WEEK_START, WEEK_END, TODAY_START) == 0


class TestDeadlineForecast:
    """Тесты прогноза срока проекта"""

    def test_remaining_points_exclude_done(self):
        stories = [
            StorySnapshot(id=uuid.uuid4(), story_points=8, status="todo"),
            StorySnapshot(id=uuid.uuid4(), story_points=5, status="Done"),
            StorySnapshot(id=uuid.uuid4(), story_points=None, status="todo"),
        ]
        assert remaining_story_points(stories) == 8

    def test_forecast_days(self):
        forecast = forecast_deadline(40, average_velocity([10, 10, 10]), TODAY, date(2026, 4, 1))
        assert forecast.days_needed == 56
        assert forecast.forecast_date == date(2026, 5, 13)
        assert forecast.days_late == 42
        assert forecast.is_at_risk

    def test_risk_threshold_is_strict(self):
        """Ровно 21 день опоздания - еще не риск"""
        forecast = forecast_deadline(10, 10, TODAY, date(2026, 3, 11))
        assert forecast.days_late == 21
        assert not forecast.is_at_risk

    def test_no_forecast_without_scope_or_velocity(self):
        assert forecast_deadline(0, 10, TODAY, TODAY) is None
        assert forecast_deadline(10, 0, TODAY, TODAY) is None
        assert average_velocity([]) == 0.0
