"""
Модели табелей учета времени
"""

import datetime as dt
import uuid

from sqlalchemy import Date, DateTime, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from alert_engine.models.base import BaseModel


class TimesheetStatus(str):
    """Статусы записи табеля"""

    DRAFT = "draft"
    PENDING_PM = "pending_pm"
    PENDING_ADMIN = "pending_admin"
    APPROVED = "approved"
    REJECTED = "rejected"


class DailyTimesheetStatus(str):
    """Статусы дневной сводки"""

    DRAFT = "draft"
    SUBMITTED = "submitted"


class Timesheet(BaseModel):
    """Запись учета времени"""

    __tablename__ = "timesheets"

    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        index=True,
        nullable=True,
        comment="ID организации",
    )

    user_email: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
        comment="Email автора записи",
    )

    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        index=True,
        nullable=True,
        comment="ID проекта",
    )

    task_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        comment="ID задачи",
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        index=True,
        nullable=False,
        comment="Дата работы",
    )

    total_minutes: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Длительность в минутах",
    )

    work_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Вид работы (rework - переделка)",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=TimesheetStatus.DRAFT,
        index=True,
        nullable=False,
        comment="Статус согласования",
    )

    def __repr__(self) -> str:
        return f"<Timesheet(user={self.user_email}, date={self.date}, minutes={self.total_minutes})>"

    @validates("user_email")
    def normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower() if value else value


class UserTimesheet(BaseModel):
    """Дневная сводка табеля пользователя"""

    __tablename__ = "user_timesheets"
    __table_args__ = (
        UniqueConstraint("user_email", "timesheet_date", name="uq_user_timesheet_day"),
    )

    tenant_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    timesheet_date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=DailyTimesheetStatus.DRAFT, nullable=False
    )
    work_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    total_time_submitted_in_day: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Всего минут за день",
    )
    rework_time_in_day: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Минут переделок за день",
    )

    actual_date: Mapped[dt.datetime | None] = mapped_column(
        DateTime,
        nullable=True,
        comment="Момент последнего пересчета (UTC)",
    )

    def __repr__(self) -> str:
        return f"<UserTimesheet(user={self.user_email}, date={self.timesheet_date})>"
