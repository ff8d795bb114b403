"""
Падение скорости проекта ниже 85% по последним замерам спринтов

Одно падение - предупреждение, два спринта подряд - тревога с письмом.
"""

import sys
from collections.abc import Sequence

from sqlalchemy.future import select

from alert_engine.core.config import settings
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.velocity import VelocityTrend, velocity_trend
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project, ProjectRole
from alert_engine.models.sprint import SprintVelocity
from alert_engine.models.user import User
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import VelocityRecordSnapshot


class LowVelocityJob(RuleJob[Project]):
    """Оповещения о низкой скорости спринтов."""

    name = "low_velocity"
    description = "Оповещения менеджерам о скорости спринтов ниже 85%"

    async def fetch_scope(self) -> Sequence[Project]:
        return await self.store.find(
            Project,
            Project.id.in_(
                select(SprintVelocity.project_id).where(SprintVelocity.project_id.is_not(None))
            ),
            order_by=Project.name,
        )

    def describe_item(self, item: Project) -> str:
        return f"проект {item.id} '{item.name}'"

    async def _recipients(self, project: Project) -> list[User]:
        """Менеджеры проекта, иначе администраторы проекта"""
        managers = await self.resolver.explicit_role_users(project.id)
        if managers:
            return managers
        return await self.resolver.explicit_role_users(project.id, roles=(ProjectRole.ADMIN,))

    async def process_item(self, item: Project) -> None:
        records = await self.store.find(SprintVelocity, SprintVelocity.project_id == item.id)
        trend = velocity_trend(
            VelocityRecordSnapshot.model_validate(r, from_attributes=True) for r in records
        )
        if trend is None or not trend.is_drop:
            return

        tag = RuleTag.CONSISTENT_VELOCITY_DROP if trend.is_consistent_drop else RuleTag.VELOCITY_DROP
        recipients = await self._recipients(item)
        if not recipients:
            self.log.log_no_recipients(tag.value, f"project {item.id}")
            return

        latest = trend.latest
        subject = SubjectRef(
            entity_type="sprint", entity_id=latest.sprint_id, project_id=item.id
        )
        link = f"/ProjectDetail?id={item.id}"
        for recipient in recipients:
            await self.notify(
                recipient,
                tag,
                subject,
                self._draft(item, trend, recipient, link),
                tenant_id=item.tenant_id,
                data={"sprint_id": str(latest.sprint_id)},
            )

    def _draft(
        self, project: Project, trend: VelocityTrend, recipient: User, link: str
    ) -> NotificationDraft:
        latest = trend.latest
        previous = trend.previous
        if previous is None or not trend.is_consistent_drop:
            return NotificationDraft(
                title="⚠️ Low Velocity Alert",
                message=(
                    f"**{project.name}** velocity dropped below 85% for the latest sprint. "
                    f"Latest: {latest.velocity_percentage:.1f}%. Review required."
                ),
                link=link,
            )

        return NotificationDraft(
            title="🚨 Consistent Low Velocity Alarm",
            message=(
                f"**{project.name}** velocity is critically low (<85%) for 2 consecutive "
                f"sprints. Latest: {latest.velocity_percentage:.1f}%, "
                f"Previous: {previous.velocity_percentage:.1f}%. Immediate review required."
            ),
            link=link,
            email_data={
                "recipient_name": recipient.display_name,
                "project_name": project.name,
                "sprint_name": latest.sprint_name,
                "latest_velocity": f"{latest.velocity_percentage:.1f}%",
                "previous_sprint_name": previous.sprint_name,
                "previous_velocity": f"{previous.velocity_percentage:.1f}%",
                "project_url": f"{settings.FRONTEND_URL}{link}",
            },
        )


def main() -> None:
    sys.exit(run_job_main(LowVelocityJob))


if __name__ == "__main__":
    main()
