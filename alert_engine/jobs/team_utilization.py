"""
Загрузка команды проекта по табелям

Ниже 65% за 30 дней - тревога менеджерам и администраторам организации,
иначе ниже 75% за 7 дней - предупреждение менеджерам. Емкость участника:
дни * 5/7 * его рабочие часы в день.
"""

import sys
from collections.abc import Sequence
from datetime import timedelta

from alert_engine.core.config import settings
from alert_engine.core.constants import (
    ACTIVE_PROJECT_STATUSES,
    TEAM_CRITICAL_UTILIZATION_DAYS,
    TEAM_CRITICAL_UTILIZATION_PERCENT,
    TEAM_LOW_UTILIZATION_DAYS,
    TEAM_LOW_UTILIZATION_PERCENT,
)
from alert_engine.core.timeutils import local_now
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.utilization import TeamUtilization, team_capacity_hours
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project, ProjectRole
from alert_engine.models.tenant import Tenant
from alert_engine.models.timesheet import Timesheet
from alert_engine.models.user import User, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef

TEAM_ROLES = (ProjectRole.MEMBER, ProjectRole.PROJECT_MANAGER)
MANAGER_TEAM_ROLES = (ProjectRole.PROJECT_MANAGER, ProjectRole.OWNER)


class TeamUtilizationJob(RuleJob[Project]):
    """Оповещения о низкой загрузке команды."""

    name = "team_utilization"
    description = "Оповещения менеджерам о низкой загрузке команды проекта"
    supports_force = True

    async def fetch_scope(self) -> Sequence[Project]:
        return await self.store.find(
            Project, Project.status.in_(ACTIVE_PROJECT_STATUSES), order_by=Project.name
        )

    def describe_item(self, item: Project) -> str:
        return f"проект {item.id} '{item.name}'"

    async def _members(self, project: Project) -> list[User]:
        """Активные участники команды, без team_members - по проектным ролям"""
        emails = project.member_emails()
        if emails:
            users = await self.store.find_in(User, User.email, emails)
        else:
            users = await self.resolver.explicit_role_users(project.id, roles=TEAM_ROLES)
        return [u for u in users if u.status == UserStatus.ACTIVE]

    async def _utilization(
        self, project: Project, members: list[User], days: int
    ) -> TeamUtilization:
        today = local_now(self.now, self.tz_name).date()
        entries = await self.store.find(
            Timesheet,
            Timesheet.project_id == project.id,
            Timesheet.user_email.in_([m.email for m in members]),
            Timesheet.date >= today - timedelta(days=days),
        )
        return TeamUtilization(
            days=days,
            capacity_hours=team_capacity_hours((m.working_hours_per_day for m in members), days),
            logged_hours=sum(e.total_minutes or 0 for e in entries) / 60,
        )

    async def process_item(self, item: Project) -> None:
        members = await self._members(item)
        if not members:
            self.log.log_skipped("нет участников команды", self.describe_item(item))
            return

        stat = await self._utilization(item, members, TEAM_CRITICAL_UTILIZATION_DAYS)
        self.log.debug(
            f"{item.name}: загрузка за {stat.days} дн. {stat.percent:.1f}%",
            project_id=str(item.id),
        )
        if stat.percent < TEAM_CRITICAL_UTILIZATION_PERCENT:
            tag = RuleTag.CRITICAL_UNDERUTILIZATION
            recipients = await self._managers(item) + await self.resolver.tenant_admins(
                item.tenant_id
            )
        else:
            stat = await self._utilization(item, members, TEAM_LOW_UTILIZATION_DAYS)
            if stat.percent >= TEAM_LOW_UTILIZATION_PERCENT:
                return
            tag = RuleTag.LOW_TEAM_UTILIZATION
            recipients = await self._managers(item)

        if not recipients:
            recipients = await self._tenant_owner(item)
        recipients = list({u.email: u for u in recipients}.values())
        if not recipients:
            self.log.log_no_recipients(tag.value, f"project {item.id}")
            return

        subject = SubjectRef(entity_type="project", entity_id=item.id, project_id=item.id)
        link = f"/ProjectDetail?id={item.id}&tab=team"
        for recipient in recipients:
            await self.notify(
                recipient,
                tag,
                subject,
                self._draft(item, tag, stat, recipient, link),
                tenant_id=item.tenant_id,
                data={"utilization_percentage": round(stat.percent, 1), "days": stat.days},
            )

    async def _managers(self, project: Project) -> list[User]:
        """Менеджеры и владельцы из команды, иначе явные менеджеры проекта"""
        managers = await self.resolver.team_role_users(project, MANAGER_TEAM_ROLES)
        if managers:
            return managers
        return await self.resolver.explicit_role_users(project.id)

    async def _tenant_owner(self, project: Project) -> list[User]:
        if project.tenant_id is None:
            return []
        tenant = await self.store.get(Tenant, project.tenant_id)
        if tenant is None or not tenant.owner_email:
            return []
        return await self.store.find(User, User.email == tenant.owner_email.lower())

    def _draft(
        self,
        project: Project,
        tag: RuleTag,
        stat: TeamUtilization,
        recipient: User,
        link: str,
    ) -> NotificationDraft:
        is_alarm = tag == RuleTag.CRITICAL_UNDERUTILIZATION
        if is_alarm:
            title = "🚨 Critical Underutilization"
            message = (
                f"🚨 Critical underutilization detected for {project.name} "
                f"({stat.percent:.0f}% over 30 days). Project efficiency may be impacted. "
                "Review and redistribute tasks."
            )
        else:
            title = "⚠️ Low Team Utilization"
            message = (
                f"⚠️ Team utilization for {project.name} is {stat.percent:.0f}% "
                "(Target > 75%). Consider reallocation."
            )
        return NotificationDraft(
            title=title,
            message=message,
            link=link,
            email_data={
                "recipient_name": recipient.display_name,
                "project_name": project.name,
                "is_alarm": is_alarm,
                "period": f"last {stat.days} days",
                "capacity_hours": f"{stat.capacity_hours:.0f}h",
                "logged_hours": f"{stat.logged_hours:.1f}h",
                "utilization_percent": f"{stat.percent:.1f}%",
                "project_url": f"{settings.FRONTEND_URL}{link}",
            },
        )


def main() -> None:
    sys.exit(run_job_main(TeamUtilizationJob))


if __name__ == "__main__":
    main()
