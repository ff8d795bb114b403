"""
Модели организаций (тенантов) и сводки подписок
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from alert_engine.models.base import BaseModel


class TenantStatus(str):
    """Статусы организации"""

    TRIAL = "trial"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class SubscriptionStatus(str):
    """Статусы оплаты подписки"""

    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"


class Tenant(BaseModel):
    """Модель организации"""

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Название организации",
    )

    owner_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Email владельца",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=TenantStatus.TRIAL,
        index=True,
        nullable=False,
        comment="Статус организации",
    )

    subscription_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Статус оплаты",
    )
    subscription_plan: Mapped[str | None] = mapped_column(String(50), nullable=True)
    subscription_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    trial_ends_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
        comment="Окончание пробного периода (UTC)",
    )
    subscription_start_date: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    subscription_ends_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )

    # Лимиты тарифа
    max_users: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_projects: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_workspaces: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_storage_gb: Mapped[int | None] = mapped_column(Integer, nullable=True)

    internal_notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Служебные заметки",
    )

    def __repr__(self) -> str:
        return f"<Tenant(name={self.name}, status={self.status})>"

    def append_note(self, note: str) -> str:
        """Текст заметок с добавленной строкой"""
        if self.internal_notes:
            return f"{self.internal_notes}\n{note}"
        return note


class TenantSubscription(BaseModel):
    """Денормализованная сводка подписки организации"""

    __tablename__ = "tenant_subscriptions"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="ID организации",
    )

    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    plan_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    subscription_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    trial_ends_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    max_users: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_projects: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_workspaces: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_storage_gb: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<TenantSubscription(tenant_id={self.tenant_id}, status={self.status})>"
