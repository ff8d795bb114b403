"""
Модели задач и историй
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from alert_engine.models.base import BaseModel


class TaskStatus(str):
    """Статусы задач"""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Story(BaseModel):
    """Модель пользовательской истории"""

    __tablename__ = "stories"

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

    sprint_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("sprints.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
        comment="ID спринта",
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Название истории",
    )

    status: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Статус истории",
    )

    story_points: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
        comment="Оценка в Story Points",
    )

    assignees: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Email исполнителей",
    )

    def __repr__(self) -> str:
        return f"<Story(title={self.title}, status={self.status})>"


class Task(BaseModel):
    """Модель задачи"""

    __tablename__ = "tasks"

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

    sprint_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("sprints.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
        comment="ID спринта",
    )

    story_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stories.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
        comment="ID истории",
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Название задачи",
    )

    status: Mapped[str] = mapped_column(
        String(50),
        default=TaskStatus.TODO,
        nullable=False,
        comment="Статус задачи",
    )

    assignees: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Email исполнителей",
    )

    due_date: Mapped[datetime | None] = mapped_column(
        DateTime,
        index=True,
        nullable=True,
        comment="Срок выполнения (UTC)",
    )

    estimated_hours: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
        comment="Оценка времени в часах",
    )

    def __repr__(self) -> str:
        return f"<Task(title={self.title}, status={self.status})>"
