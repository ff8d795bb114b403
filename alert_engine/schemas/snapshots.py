"""
Неизменяемые снимки сущностей для расчета метрик

Снимки строятся из ORM-объектов через model_validate(obj, from_attributes=True)
и не имеют доступа к сессии.
"""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Snapshot(BaseModel):
    """Базовый снимок"""

    model_config = ConfigDict(frozen=True, from_attributes=True)


def _normalize_emails(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(
        item.strip().lower() for item in value if isinstance(item, str) and item.strip()
    )


class TaskSnapshot(Snapshot):
    """Снимок задачи"""

    id: uuid.UUID
    project_id: uuid.UUID | None = None
    sprint_id: uuid.UUID | None = None
    story_id: uuid.UUID | None = None
    title: str = ""
    status: str | None = None
    assignees: tuple[str, ...] = ()
    due_date: datetime | None = None
    estimated_hours: float | None = None

    @field_validator("assignees", mode="before")
    @classmethod
    def normalize_assignees(cls, v: Any) -> tuple[str, ...]:
        return _normalize_emails(v)


class StorySnapshot(Snapshot):
    """Снимок истории"""

    id: uuid.UUID
    project_id: uuid.UUID | None = None
    sprint_id: uuid.UUID | None = None
    title: str = ""
    status: str | None = None
    story_points: float | None = None
    assignees: tuple[str, ...] = ()

    @field_validator("assignees", mode="before")
    @classmethod
    def normalize_assignees(cls, v: Any) -> tuple[str, ...]:
        return _normalize_emails(v)


class SprintSnapshot(Snapshot):
    """Снимок спринта"""

    id: uuid.UUID
    tenant_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None
    name: str
    status: str
    start_date: date | None = None
    end_date: date | None = None
    committed_points: float | None = None
    locked_date: datetime | None = None
    impediments: tuple[Any, ...] = ()

    @field_validator("impediments", mode="before")
    @classmethod
    def normalize_impediments(cls, v: Any) -> tuple[Any, ...]:
        return tuple(v) if isinstance(v, (list, tuple)) else ()


class TimesheetSnapshot(Snapshot):
    """Снимок записи табеля"""

    user_email: str
    project_id: uuid.UUID | None = None
    date: date
    total_minutes: int = Field(default=0, ge=0)
    work_type: str | None = None
    status: str
    created_at: datetime | None = None

    @field_validator("total_minutes", mode="before")
    @classmethod
    def default_minutes(cls, v: Any) -> int:
        return v or 0


class VelocityRecordSnapshot(Snapshot):
    """Снимок замера скорости спринта"""

    sprint_id: uuid.UUID
    project_id: uuid.UUID | None = None
    sprint_name: str
    sprint_end_date: date | None = None
    velocity_percentage: float
    is_final_measurement: bool = False
    measurement_date: datetime


class DailyTimesheetSnapshot(Snapshot):
    """Снимок дневной сводки табеля"""

    user_email: str
    timesheet_date: date
    status: str
    total_time_submitted_in_day: int = Field(default=0, ge=0)
    rework_time_in_day: int = Field(default=0, ge=0)

    @field_validator("total_time_submitted_in_day", "rework_time_in_day", mode="before")
    @classmethod
    def default_minutes(cls, v: Any) -> int:
        return v or 0
