"""
Загрузка сотрудников: перегрузка по очкам историй, недогрузка по оценкам задач
"""

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from alert_engine.core.constants import (
    ACTIVE_WORK_TASK_STATUSES,
    DEFAULT_WORKING_HOURS_PER_DAY,
    HOURS_PER_STORY_POINT,
    OVERLOAD_THRESHOLD_PERCENT,
    UNDERLOAD_THRESHOLD_RATIO,
    WEEKLY_CAPACITY_HOURS,
    WORKING_DAYS_PER_WEEK,
)
from alert_engine.metrics.overdue import is_terminal_status
from alert_engine.schemas.snapshots import StorySnapshot, TaskSnapshot


class UserLoad(BaseModel):
    """Нагрузка пользователя по историям"""

    model_config = ConfigDict(frozen=True)

    email: str
    load_hours: float
    utilization_percent: float
    project_ids: frozenset

    @property
    def is_overloaded(self) -> bool:
        return is_overloaded(self.utilization_percent)


def utilization_percent(hours: float, capacity: float = WEEKLY_CAPACITY_HOURS) -> float:
    """Процент загрузки от емкости, 0 при нулевой емкости"""
    if capacity <= 0:
        return 0.0
    return hours / capacity * 100


def is_overloaded(percent: float, threshold: float = OVERLOAD_THRESHOLD_PERCENT) -> bool:
    return percent > threshold


def compute_story_load(stories: Iterable[StorySnapshot]) -> dict[str, UserLoad]:
    """
    Нагрузка по всем назначенным историям, независимо от спринта и статуса.

    Каждый исполнитель истории получает story_points * 2 часа.
    """
    hours: dict[str, float] = {}
    projects: dict[str, set] = {}
    for story in stories:
        story_hours = max(float(story.story_points or 0), 0.0) * HOURS_PER_STORY_POINT
        for email in set(story.assignees):
            hours[email] = hours.get(email, 0.0) + story_hours
            if story.project_id is not None:
                projects.setdefault(email, set()).add(story.project_id)

    return {
        email: UserLoad(
            email=email,
            load_hours=load,
            utilization_percent=utilization_percent(load),
            project_ids=frozenset(projects.get(email, set())),
        )
        for email, load in hours.items()
    }


def weekly_capacity(working_hours_per_day: int | float | None) -> float:
    """Недельная емкость: часы в день * 5"""
    daily = working_hours_per_day or DEFAULT_WORKING_HOURS_PER_DAY
    return float(daily) * WORKING_DAYS_PER_WEEK


def weekly_assigned_hours(
    email: str,
    tasks: Iterable[TaskSnapshot],
    week_start: datetime,
    week_end: datetime,
) -> float:
    """Сумма оценок незакрытых задач пользователя со сроком в текущей неделе [start, end)"""
    email = email.lower()
    return sum(
        float(task.estimated_hours or 0)
        for task in tasks
        if email in task.assignees
        and not is_terminal_status(task.status)
        and task.due_date is not None
        and week_start <= task.due_date < week_end
    )


def is_underloaded(
    hours: float, capacity: float, ratio: float = UNDERLOAD_THRESHOLD_RATIO
) -> bool:
    """Загрузка строго меньше 70% емкости"""
    return hours < capacity * ratio


def planned_week_hours(
    email: str,
    tasks: Iterable[TaskSnapshot],
    week_start: datetime,
    week_end: datetime,
    today_start: datetime,
) -> float:
    """
    Запланированные часы сотрудника на текущую неделю.

    Учитываются незакрытые задачи со сроком в неделе [start, end) или
    в работе/на ревью. Задачи со сроком раньше сегодняшнего дня не входят.
    """
    email = email.lower()
    total = 0.0
    for task in tasks:
        if email not in task.assignees or is_terminal_status(task.status):
            continue
        in_week = task.due_date is not None and week_start <= task.due_date < week_end
        if not in_week and (task.status or "").lower() not in ACTIVE_WORK_TASK_STATUSES:
            continue
        if task.due_date is not None and task.due_date < today_start:
            continue
        total += float(task.estimated_hours or 0)
    return total
