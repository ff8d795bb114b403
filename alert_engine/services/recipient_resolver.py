"""
Определение получателей оповещений по цепочке ролей проекта.

Порядок уровней, первый непустой побеждает:
1. Явные проектные роли (ProjectUserRole)
2. Роли в team_members проекта
3. Владелец проекта (email или ID пользователя)
4. Активные администраторы организации (только при admin_fallback)
"""

import logging
import uuid
from collections.abc import Iterable, Sequence

from alert_engine.models.project import Project, ProjectRole, ProjectUserRole
from alert_engine.models.user import CustomRole, User, UserRole, UserStatus
from alert_engine.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

MANAGER_ROLES: tuple[str, ...] = (ProjectRole.PROJECT_MANAGER,)

# Ошибки формы данных, при которых уровень считается пустым
DATA_SHAPE_ERRORS = (ValueError, TypeError, AttributeError, KeyError)


def _unique_by_email(users: Iterable[User]) -> list[User]:
    seen: set[str] = set()
    result = []
    for user in users:
        if user is None or not user.email or user.email in seen:
            continue
        seen.add(user.email)
        result.append(user)
    return result


def _as_uuid(value: object) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str) and value:
        return uuid.UUID(value)
    return None


class RecipientResolver:
    """Сервис определения получателей."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def _users_by_refs(
        self, ids: Sequence[uuid.UUID], emails: Sequence[str]
    ) -> list[User]:
        """Пользователи по ID и email в порядке ссылок."""
        by_id = {u.id: u for u in await self.store.find_in(User, User.id, ids)}
        by_email = {
            u.email: u
            for u in await self.store.find_in(User, User.email, [e.lower() for e in emails])
        }
        ordered = [by_id.get(i) for i in ids] + [by_email.get(e.lower()) for e in emails]
        return _unique_by_email(u for u in ordered if u is not None)

    async def explicit_role_users(
        self, project_id: uuid.UUID, roles: Sequence[str] = MANAGER_ROLES
    ) -> list[User]:
        """
        Уровень 1: пользователи с явной проектной ролью.

        Администратор с прикладной ролью project_manager считается менеджером.
        """
        records = await self.store.find(
            ProjectUserRole,
            ProjectUserRole.project_id == project_id,
            order_by=ProjectUserRole.created_at,
        )
        matched = [
            r
            for r in records
            if r.role in roles
            or (
                ProjectRole.PROJECT_MANAGER in roles
                and r.role == ProjectRole.ADMIN
                and r.custom_role == CustomRole.PROJECT_MANAGER
            )
        ]
        ids = [r.user_id for r in matched if r.user_id]
        emails = [r.user_email for r in matched if not r.user_id and r.user_email]
        return await self._users_by_refs(ids, emails)

    async def team_role_users(self, project: Project, roles: Sequence[str]) -> list[User]:
        """Уровень 2: участники team_members с подходящей ролью."""
        members = project.members_with_role(*roles)
        emails = [m["email"] for m in members if isinstance(m.get("email"), str)]
        ids = [
            _as_uuid(m["user_id"])
            for m in members
            if not isinstance(m.get("email"), str) and m.get("user_id")
        ]
        return await self._users_by_refs([i for i in ids if i], emails)

    async def owner_users(self, project: Project) -> list[User]:
        """Уровень 3: владелец проекта."""
        if not project.owner:
            return []
        if project.owner_is_email:
            return await self._users_by_refs([], [project.owner])
        owner_id = _as_uuid(project.owner)
        return await self._users_by_refs([owner_id] if owner_id else [], [])

    async def tenant_admins(self, tenant_id: uuid.UUID | None) -> list[User]:
        """Уровень 4: активные администраторы организации."""
        if tenant_id is None:
            return []
        admins = await self.store.find(
            User,
            User.tenant_id == tenant_id,
            User.role == UserRole.ADMIN,
            User.status == UserStatus.ACTIVE,
            order_by=User.email,
        )
        return _unique_by_email(admins)

    async def _tier(self, name: str, project: Project, coro) -> list[User]:
        try:
            return await coro
        except DATA_SHAPE_ERRORS as exc:
            logger.warning(
                f"Некорректные данные проекта {project.id} на уровне '{name}': {exc}",
                extra={"project_id": str(project.id), "tier": name},
            )
            return []

    async def resolve(
        self,
        project: Project,
        roles: Sequence[str] = MANAGER_ROLES,
        admin_fallback: bool = False,
    ) -> list[User]:
        """
        Получатели проекта по цепочке уровней.

        Returns:
            Упорядоченный список без повторов (пустой - уведомлять некого)
        """
        users = await self._tier(
            "explicit_role", project, self.explicit_role_users(project.id, roles)
        )
        if not users:
            users = await self._tier(
                "team_members", project, self.team_role_users(project, roles)
            )
        if not users:
            users = await self._tier("owner", project, self.owner_users(project))
        if not users and admin_fallback:
            users = await self._tier(
                "tenant_admin", project, self.tenant_admins(project.tenant_id)
            )
        return users

    async def resolve_for_projects(
        self,
        projects: Iterable[Project],
        roles: Sequence[str] = MANAGER_ROLES,
        admin_fallback: bool = False,
        tenant_id: uuid.UUID | None = None,
        exclude_emails: Iterable[str] = (),
    ) -> list[User]:
        """
        Объединение получателей нескольких проектов.

        Администраторы организации tenant_id добавляются, только если
        ни один проект не дал получателей.
        """
        excluded = {e.lower() for e in exclude_emails if e}
        collected: list[User] = []
        for project in projects:
            collected.extend(await self.resolve(project, roles))

        users = [u for u in _unique_by_email(collected) if u.email not in excluded]
        if not users and admin_fallback:
            admins = await self.tenant_admins(tenant_id)
            users = [u for u in admins if u.email not in excluded]
        return users
