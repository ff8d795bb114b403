"""
Модели спринтов и замеров скорости
"""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from alert_engine.models.base import BaseModel


class SprintStatus(str):
    """Статусы спринта"""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


class Sprint(BaseModel):
    """Модель спринта"""

    __tablename__ = "sprints"

    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        index=True,
        nullable=True,
        comment="ID организации",
    )

    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
        nullable=True,
        comment="ID проекта",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Название спринта",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=SprintStatus.DRAFT,
        nullable=False,
        comment="Статус спринта",
    )

    start_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Дата начала спринта",
    )

    end_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Дата окончания спринта",
    )

    committed_points: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
        comment="Зафиксированный объем (перекрывает сумму историй)",
    )

    locked_date: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
        comment="Момент фиксации объема спринта",
    )

    impediments: Mapped[list[Any] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Препятствия",
    )

    def __repr__(self) -> str:
        return f"<Sprint(name={self.name}, status={self.status})>"

    @property
    def is_locked(self) -> bool:
        """Зафиксирован ли объем спринта"""
        return self.locked_date is not None


class SprintVelocity(BaseModel):
    """Замер скорости спринта"""

    __tablename__ = "sprint_velocities"
    __table_args__ = (
        UniqueConstraint(
            "sprint_id", "is_final_measurement", name="uq_sprint_velocity_measurement"
        ),
    )

    tenant_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), index=True, nullable=True
    )
    sprint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("sprints.id", ondelete="CASCADE"),
        nullable=False,
    )
    sprint_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sprint_status: Mapped[str] = mapped_column(String(20), nullable=False)
    sprint_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    sprint_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Метрики
    committed_points: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    completed_points: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    velocity_percentage: Mapped[float] = mapped_column(
        Float, default=0.0, nullable=False
    )
    total_tasks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_tasks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    in_progress_tasks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    not_started_tasks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_stories: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_stories: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    impediments_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Статус замера
    is_final_measurement: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    measurement_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    recorded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<SprintVelocity(sprint={self.sprint_name}, velocity={self.velocity_percentage:.1f}%)>"
