"""
Блокировка табеля: больше 3 неотправленных дней за последнюю неделю

Сотруднику открывается тревога (закрывается, когда пропусков снова не
больше трех). Менеджеры его проектов и администраторы организации
получают уведомление раз в локальные сутки на каждого сотрудника.
"""

import sys
from collections.abc import Sequence
from datetime import date, timedelta

from sqlalchemy import or_

from alert_engine.core.config import settings
from alert_engine.core.constants import (
    LOCKOUT_MISSING_THRESHOLD,
    LOCKOUT_WINDOW_DAYS,
    SUBMITTED_DAY_STATUSES,
)
from alert_engine.core.timeutils import local_now
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.compliance import missing_submission_days
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project, ProjectRole, ProjectStatus
from alert_engine.models.timesheet import UserTimesheet
from alert_engine.models.user import CustomRole, User, UserRole, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef

TIMESHEETS_LINK = "/Timesheets"

# Прикладные роли, на которые блокировка не распространяется
EXEMPT_CUSTOM_ROLES = (CustomRole.PROJECT_MANAGER, CustomRole.OWNER, CustomRole.CLIENT)

MANAGER_PROJECT_ROLES = (ProjectRole.PROJECT_MANAGER, ProjectRole.OWNER)


class TimesheetLockoutJob(RuleJob[User]):
    """Тревога о повторных пропусках табеля."""

    name = "timesheet_lockout"
    description = "Тревога о более чем 3 неотправленных днях табеля за неделю"

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User,
            User.status == UserStatus.ACTIVE,
            User.role == UserRole.MEMBER,
            or_(User.custom_role.is_(None), User.custom_role.not_in(EXEMPT_CUSTOM_ROLES)),
            order_by=User.email,
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        today = local_now(self.now, self.tz_name).date()
        submitted = await self.store.find(
            UserTimesheet,
            UserTimesheet.user_email == item.email,
            UserTimesheet.timesheet_date >= today - timedelta(days=LOCKOUT_WINDOW_DAYS),
            UserTimesheet.timesheet_date < today,
            UserTimesheet.status.in_(SUBMITTED_DAY_STATUSES),
        )
        missing = missing_submission_days({r.timesheet_date for r in submitted}, today)

        if len(missing) <= LOCKOUT_MISSING_THRESHOLD:
            self.tally.resolved += await self.dedup.resolve(
                item.email, RuleTag.TIMESHEET_LOCKOUT, item.id, self.now
            )
            return

        self.log.info(
            f"{item.email}: {len(missing)} неотправленных дней за неделю",
            user_email=item.email,
        )
        subject = SubjectRef(entity_type="user", entity_id=item.id)
        missing_dates = ", ".join(day.isoformat() for day in sorted(missing))
        await self.notify(
            item,
            RuleTag.TIMESHEET_LOCKOUT,
            subject,
            NotificationDraft(
                title="🚨 Timesheets Locked: Repeated Non-Compliance",
                message=(
                    f"You have missed {len(missing)} daily timesheets in the last week. "
                    "Your ability to log new time is LOCKED until you fill in the missing days."
                ),
                link=TIMESHEETS_LINK,
                email_data={
                    "user_name": item.display_name,
                    "user_email": item.email,
                    "missing_count": len(missing),
                    "missing_dates": missing_dates,
                    "timesheets_url": f"{settings.FRONTEND_URL}{TIMESHEETS_LINK}",
                },
            ),
            tenant_id=item.tenant_id,
            data={"missing_dates": [day.isoformat() for day in sorted(missing)]},
        )
        await self._notify_managers(item, subject, missing)

    async def _notify_managers(
        self, user: User, subject: SubjectRef, missing: list[date]
    ) -> None:
        name = user.display_name
        missing_dates = ", ".join(day.isoformat() for day in sorted(missing))
        for manager in await self._managers(user):
            await self.notify(
                manager,
                RuleTag.TEAM_MEMBER_LOCKOUT,
                subject,
                NotificationDraft(
                    title=f"User Locked: {name}",
                    message=(
                        f"{name} has been locked out of timesheets due to "
                        f"{len(missing)} missing entries in the last week."
                    ),
                    email_data={
                        "recipient_name": manager.display_name,
                        "recipient_email": manager.email,
                        "member_name": name,
                        "member_email": user.email,
                        "missing_count": len(missing),
                        "missing_dates": missing_dates,
                    },
                ),
                tenant_id=user.tenant_id,
            )

    async def _managers(self, user: User) -> list[User]:
        """Менеджеры и владельцы активных проектов сотрудника, администраторы организации"""
        projects = [
            project
            for project in await self.store.find(
                Project,
                Project.tenant_id == user.tenant_id,
                Project.status == ProjectStatus.ACTIVE,
            )
            if project.has_member(user.email)
        ]
        collected: list[User] = []
        for project in projects:
            collected.extend(await self.resolver.owner_users(project))
            collected.extend(await self.resolver.team_role_users(project, MANAGER_PROJECT_ROLES))
        if user.tenant_id is not None:
            collected.extend(
                await self.store.find(
                    User,
                    User.tenant_id == user.tenant_id,
                    User.role.in_((UserRole.ADMIN, UserRole.OWNER)),
                    User.status == UserStatus.ACTIVE,
                    order_by=User.email,
                )
            )

        managers: dict[str, User] = {}
        for manager in collected:
            if manager.email != user.email:
                managers.setdefault(manager.email, manager)
        return list(managers.values())


def main() -> None:
    sys.exit(run_job_main(TimesheetLockoutJob))


if __name__ == "__main__":
    main()
