"""
Тесты расчета просрочки задач
"""

import uuid
from datetime import datetime, timedelta

import pytest

from alert_engine.metrics.overdue import (
    days_overdue,
    is_overdue,
    needs_assignee_alert,
    needs_escalation,
    overdue_ratio,
    overdue_tasks,
    sprint_needs_alarm,
    task_days_overdue,
)
from alert_engine.schemas.snapshots import TaskSnapshot

NOW = datetime(2026, 3, 18, 12, 0)


def make_task(due: datetime | None, status: str = "todo") -> TaskSnapshot:
    return TaskSnapshot(id=uuid.uuid4(), title="Task", status=status, due_date=due)


class TestDaysOverdue:
    """Тесты подсчета дней просрочки"""

    @pytest.mark.parametrize(
        "hours, expected",
        [
            (12, 1),
            (35, 1),
            (36, 2),
            (48, 2),
            (5 * 24 - 1, 5),
            (5 * 24, 5),
        ],
    )
    def test_rounding_half_up(self, hours, expected):
        """Половина дня округляется вверх"""
        assert days_overdue(NOW - timedelta(hours=hours), NOW) == expected

    def test_terminal_task_not_overdue(self):
        """Закрытая задача не просрочена (регистр не важен)"""
        task = make_task(NOW - timedelta(days=10), status="Done")
        assert not is_overdue(task, NOW)
        assert task_days_overdue(task, NOW) == 0

    def test_task_without_due_date(self):
        assert not is_overdue(make_task(None), NOW)
        assert task_days_overdue(make_task(None), NOW) == 0

    def test_due_exactly_now_not_overdue(self):
        """Срок строго раньше текущего момента"""
        assert not is_overdue(make_task(NOW), NOW)


class TestOverdueThresholds:
    """Тесты порогов оповещения и эскалации"""

    @pytest.mark.parametrize(
        "days, alert, escalate",
        [(1, False, False), (2, True, False), (4, True, False), (5, True, True)],
    )
    def test_thresholds(self, days, alert, escalate):
        assert needs_assignee_alert(days) is alert
        assert needs_escalation(days) is escalate


class TestOverdueRatio:
    """Тесты доли просроченных задач"""

    def test_empty_sprint(self):
        """Пустой набор задач - доля 0"""
        assert overdue_ratio([], NOW) == 0.0
        assert not sprint_needs_alarm([], NOW)

    def test_ratio_and_order(self):
        """Просроченные задачи отсортированы от самой старой"""
        older = make_task(NOW - timedelta(days=4))
        newer = make_task(NOW - timedelta(days=1))
        tasks = [newer, make_task(NOW + timedelta(days=2)), older, make_task(None)]
        assert overdue_ratio(tasks, NOW) == 0.5
        assert overdue_tasks(tasks, NOW) == [older, newer]

    def test_threshold_is_strict(self):
        """Ровно 20% - не тревога, 25% - тревога"""
        overdue = make_task(NOW - timedelta(days=1))
        on_time = [make_task(NOW + timedelta(days=1)) for _ in range(4)]
        assert not sprint_needs_alarm([overdue, *on_time], NOW)
        assert sprint_needs_alarm([overdue, *on_time[:3]], NOW)
