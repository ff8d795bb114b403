"""
Модели проектов и проектных ролей
"""

import uuid
from datetime import date
from typing import Any

from sqlalchemy import JSON, Date, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from alert_engine.models.base import BaseModel


class ProjectStatus(str):
    """Статусы проекта"""

    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


class ProjectRole(str):
    """Роли в проекте"""

    OWNER = "owner"
    PROJECT_MANAGER = "project_manager"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class Project(BaseModel):
    """Модель проекта"""

    __tablename__ = "projects"

    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        index=True,
        nullable=True,
        comment="ID организации",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Название проекта",
    )

    # Владелец хранится либо как email, либо как строковый ID пользователя
    owner: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Владелец проекта (email или ID пользователя)",
    )

    # Список {"email": ..., "role": ..., "user_id": ...}
    team_members: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Участники команды проекта",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=ProjectStatus.ACTIVE,
        index=True,
        nullable=False,
        comment="Статус проекта",
    )

    deadline: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Плановый срок сдачи",
    )

    def __repr__(self) -> str:
        return f"<Project(name={self.name})>"

    @property
    def owner_is_email(self) -> bool:
        """Владелец записан как email"""
        return bool(self.owner) and "@" in self.owner

    def members_with_role(self, *roles: str) -> list[dict[str, Any]]:
        """Записи команды с одной из ролей (некорректные записи пропускаются)"""
        members = self.team_members if isinstance(self.team_members, list) else []
        return [
            member
            for member in members
            if isinstance(member, dict) and member.get("role") in roles
        ]

    def has_member(self, email: str) -> bool:
        """Входит ли email в команду проекта"""
        email = email.lower()
        members = self.team_members if isinstance(self.team_members, list) else []
        return any(
            isinstance(member, dict)
            and isinstance(member.get("email"), str)
            and member["email"].lower() == email
            for member in members
        )

    def member_emails(self) -> list[str]:
        """Email участников команды без повторов, в нижнем регистре"""
        members = self.team_members if isinstance(self.team_members, list) else []
        emails: list[str] = []
        for member in members:
            email = member.get("email") if isinstance(member, dict) else None
            if isinstance(email, str) and email.strip():
                email = email.strip().lower()
                if email not in emails:
                    emails.append(email)
        return emails


class ProjectUserRole(BaseModel):
    """Явная роль пользователя в проекте"""

    __tablename__ = "project_user_roles"

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="ID проекта",
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="ID пользователя",
    )

    user_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Email пользователя",
    )

    role: Mapped[str] = mapped_column(
        String(50),
        default=ProjectRole.MEMBER,
        nullable=False,
        comment="Роль в проекте",
    )

    custom_role: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Прикладная роль",
    )

    def __repr__(self) -> str:
        return f"<ProjectUserRole(project={self.project_id}, user={self.user_id}, role={self.role})>"
