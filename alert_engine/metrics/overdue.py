"""
Просрочка задач и доля просроченных задач спринта
"""

import math
from collections.abc import Sequence
from datetime import datetime

from alert_engine.core.constants import (
    ESCALATION_DAYS,
    OVERDUE_ALERT_DAYS,
    SPRINT_OVERDUE_RATIO_THRESHOLD,
    TERMINAL_TASK_STATUSES,
)
from alert_engine.schemas.snapshots import TaskSnapshot

SECONDS_PER_DAY = 86400


def is_terminal_status(status: str | None) -> bool:
    """Терминальный статус задачи (без учета регистра)"""
    return (status or "").lower() in TERMINAL_TASK_STATUSES


def is_overdue(task: TaskSnapshot, now: datetime) -> bool:
    """Задача не закрыта и срок строго раньше now"""
    if task.due_date is None or is_terminal_status(task.status):
        return False
    return task.due_date < now


def days_overdue(due_date: datetime, now: datetime) -> int:
    """Число дней просрочки, округление половины вверх (1.5 -> 2)"""
    days = abs((now - due_date).total_seconds()) / SECONDS_PER_DAY
    return math.floor(days + 0.5)


def task_days_overdue(task: TaskSnapshot, now: datetime) -> int:
    """Дни просрочки задачи, 0 если задача не просрочена"""
    if task.due_date is None or not is_overdue(task, now):
        return 0
    return days_overdue(task.due_date, now)


def needs_assignee_alert(days: int) -> bool:
    return days >= OVERDUE_ALERT_DAYS


def needs_escalation(days: int) -> bool:
    return days >= ESCALATION_DAYS


def overdue_tasks(tasks: Sequence[TaskSnapshot], now: datetime) -> list[TaskSnapshot]:
    """Просроченные задачи, от самой старой просрочки"""
    overdue = [task for task in tasks if is_overdue(task, now)]
    return sorted(overdue, key=lambda t: t.due_date or now)


def overdue_ratio(tasks: Sequence[TaskSnapshot], now: datetime) -> float:
    """Доля просроченных задач, 0 для пустого набора"""
    if not tasks:
        return 0.0
    return len(overdue_tasks(tasks, now)) / len(tasks)


def sprint_needs_alarm(
    tasks: Sequence[TaskSnapshot],
    now: datetime,
    threshold: float = SPRINT_OVERDUE_RATIO_THRESHOLD,
) -> bool:
    """Доля просроченных задач строго больше порога"""
    return bool(tasks) and overdue_ratio(tasks, now) > threshold
