"""
Модель пользователя
"""

import uuid

from sqlalchemy import JSON, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from alert_engine.core.constants import DEFAULT_WORKING_HOURS_PER_DAY
from alert_engine.models.base import BaseModel


class UserRole(str):
    """Роли пользователя в системе"""

    ADMIN = "admin"
    MEMBER = "member"
    OWNER = "owner"
    CLIENT = "client"


class CustomRole(str):
    """Прикладные роли пользователя"""

    OWNER = "owner"
    PROJECT_MANAGER = "project_manager"
    VIEWER = "viewer"
    CLIENT = "client"


class UserStatus(str):
    """Статусы пользователя"""

    ACTIVE = "active"
    INACTIVE = "inactive"


class User(BaseModel):
    """Модель пользователя"""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="Email пользователя (в нижнем регистре)",
    )

    full_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Полное имя пользователя",
    )

    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        index=True,
        nullable=True,
        comment="ID организации",
    )

    role: Mapped[str] = mapped_column(
        String(50),
        default=UserRole.MEMBER,
        nullable=False,
        comment="Роль пользователя",
    )

    custom_role: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Прикладная роль пользователя",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=UserStatus.ACTIVE,
        index=True,
        nullable=False,
        comment="Статус пользователя",
    )

    working_hours_per_day: Mapped[int | None] = mapped_column(
        Integer,
        default=DEFAULT_WORKING_HOURS_PER_DAY,
        nullable=True,
        comment="Рабочих часов в день",
    )

    # Названия дней недели ("monday" или "mon"), пусто - понедельник-суббота
    working_days: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Рабочие дни недели",
    )

    def __repr__(self) -> str:
        return f"<User(email={self.email}, role={self.role})>"

    @validates("email")
    def normalize_email(self, key: str, value: str) -> str:
        """Email хранится в нижнем регистре"""
        return value.strip().lower() if value else value

    @property
    def display_name(self) -> str:
        """Имя для сообщений"""
        return self.full_name or self.email
