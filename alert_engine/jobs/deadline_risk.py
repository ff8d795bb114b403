"""
Риск срыва срока проекта

Прогноз: оставшиеся очки историй / средняя скорость трех последних замеров
* 14 дней. Тревога, если прогноз позже срока больше чем на 21 день.
"""

import sys
from collections.abc import Sequence

from sqlalchemy import desc

from alert_engine.core.config import settings
from alert_engine.core.constants import COMPLETED_PROJECT_STATUS, DEADLINE_VELOCITY_SAMPLE
from alert_engine.core.timeutils import local_now
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.forecast import (
    DeadlineForecast,
    average_velocity,
    forecast_deadline,
    remaining_story_points,
)
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project, ProjectRole
from alert_engine.models.sprint import SprintVelocity
from alert_engine.models.task import Story
from alert_engine.models.user import User
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import StorySnapshot


class DeadlineRiskJob(RuleJob[Project]):
    """Оповещения о риске срыва срока."""

    name = "deadline_risk"
    description = "Тревога менеджерам, если прогноз завершения позже срока на 21+ день"

    async def fetch_scope(self) -> Sequence[Project]:
        return await self.store.find(
            Project,
            Project.deadline.is_not(None),
            Project.status != COMPLETED_PROJECT_STATUS,
            order_by=Project.name,
        )

    def describe_item(self, item: Project) -> str:
        return f"проект {item.id} '{item.name}'"

    async def _forecast(self, project: Project) -> DeadlineForecast | None:
        stories = await self.store.find(Story, Story.project_id == project.id)
        remaining = remaining_story_points(
            StorySnapshot.model_validate(s, from_attributes=True) for s in stories
        )
        if remaining <= 0:
            return None

        records = await self.store.find(
            SprintVelocity,
            SprintVelocity.project_id == project.id,
            order_by=desc(SprintVelocity.measurement_date),
            limit=DEADLINE_VELOCITY_SAMPLE,
        )
        if not records:
            self.log.log_skipped("нет замеров скорости", self.describe_item(project))
            return None

        return forecast_deadline(
            remaining,
            average_velocity([r.completed_points for r in records]),
            local_now(self.now, self.tz_name).date(),
            project.deadline,
        )

    async def _recipients(self, project: Project) -> list[User]:
        """Менеджеры проекта, иначе администраторы проекта"""
        managers = await self.resolver.explicit_role_users(project.id)
        if managers:
            return managers
        return await self.resolver.explicit_role_users(project.id, roles=(ProjectRole.ADMIN,))

    async def process_item(self, item: Project) -> None:
        forecast = await self._forecast(item)
        if forecast is None or not forecast.is_at_risk:
            return

        recipients = await self._recipients(item)
        if not recipients:
            self.log.log_no_recipients(RuleTag.DEADLINE_RISK.value, f"project {item.id}")
            return

        self.log.info(
            f"{item.name}: прогноз {forecast.forecast_date.isoformat()}, "
            f"опоздание {forecast.days_late} дн.",
            project_id=str(item.id),
        )
        subject = SubjectRef(entity_type="project", entity_id=item.id, project_id=item.id)
        link = f"/ProjectDetail?id={item.id}"
        for recipient in recipients:
            await self.notify(
                recipient,
                RuleTag.DEADLINE_RISK,
                subject,
                NotificationDraft(
                    title="🚨 Project Deadline Risk",
                    message=(
                        f"🚨 Deadline Risk: Forecast ({forecast.forecast_date.isoformat()}) "
                        f"exceeds deadline by {forecast.days_late} days based on current velocity."
                    ),
                    link=link,
                    email_data={
                        "recipient_name": recipient.display_name,
                        "project_name": item.name,
                        "deadline": forecast.deadline,
                        "forecast_date": forecast.forecast_date,
                        "days_late": forecast.days_late,
                        "remaining_points": f"{forecast.remaining_points:g}",
                        "average_velocity": f"{forecast.average_velocity:.1f}",
                        "project_url": f"{settings.FRONTEND_URL}{link}",
                    },
                ),
                tenant_id=item.tenant_id,
                data={"forecast_date": forecast.forecast_date.isoformat()},
            )


def main() -> None:
    sys.exit(run_job_main(DeadlineRiskJob))


if __name__ == "__main__":
    main()
