"""
Прогноз завершения проекта по средней скорости последних спринтов
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict

from alert_engine.core.constants import (
    DEADLINE_RISK_THRESHOLD_DAYS,
    DONE_STORY_STATUSES,
    SPRINT_LENGTH_DAYS,
)
from alert_engine.schemas.snapshots import StorySnapshot


class DeadlineForecast(BaseModel):
    """Прогнозная дата завершения против срока проекта"""

    model_config = ConfigDict(frozen=True)

    remaining_points: float
    average_velocity: float
    days_needed: int
    forecast_date: date
    deadline: date

    @property
    def days_late(self) -> int:
        return (self.forecast_date - self.deadline).days

    @property
    def is_at_risk(self) -> bool:
        return self.days_late > DEADLINE_RISK_THRESHOLD_DAYS


def remaining_story_points(stories: Iterable[StorySnapshot]) -> float:
    """Очки историй, кроме историй в статусе done/completed"""
    return sum(
        float(story.story_points or 0)
        for story in stories
        if (story.status or "").lower() not in DONE_STORY_STATUSES
    )


def average_velocity(completed_points: Sequence[float | None]) -> float:
    if not completed_points:
        return 0.0
    return sum(float(p or 0) for p in completed_points) / len(completed_points)


def forecast_deadline(
    remaining_points: float,
    velocity: float,
    today: date,
    deadline: date,
    sprint_days: int = SPRINT_LENGTH_DAYS,
) -> DeadlineForecast | None:
    """
    Прогноз: оставшиеся очки / средняя скорость спринтов * длина спринта.

    Returns:
        None, если объем выполнен или скорость нулевая
    """
    if remaining_points <= 0 or velocity <= 0:
        return None
    days_needed = math.ceil(remaining_points / velocity * sprint_days)
    return DeadlineForecast(
        remaining_points=remaining_points,
        average_velocity=velocity,
        days_needed=days_needed,
        forecast_date=today + timedelta(days=days_needed),
        deadline=deadline,
    )
