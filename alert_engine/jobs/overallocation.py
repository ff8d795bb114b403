"""
Перегрузка сотрудников по очкам назначенных историй (> 120% от 40 часов)

Повтор для того же сотрудника подавляется до конца локальных суток.
"""

import sys
from collections.abc import Sequence

from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.workload import UserLoad, compute_story_load
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project, ProjectRole
from alert_engine.models.task import Story
from alert_engine.models.user import User
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import StorySnapshot

OVERALLOCATION_ROLES = (ProjectRole.PROJECT_MANAGER, ProjectRole.OWNER)


class OverallocationJob(RuleJob[UserLoad]):
    """Оповещения о риске перегрузки."""

    name = "overallocation"
    description = "Оповещения менеджерам о загрузке сотрудников выше 120%"

    async def fetch_scope(self) -> Sequence[UserLoad]:
        stories = await self.store.find(Story, Story.assignees.is_not(None))
        loads = compute_story_load(
            StorySnapshot.model_validate(s, from_attributes=True) for s in stories
        )
        return sorted(
            (load for load in loads.values() if load.is_overloaded),
            key=lambda load: load.email,
        )

    def describe_item(self, item: UserLoad) -> str:
        return f"загрузка {item.email} ({item.utilization_percent:.1f}%)"

    def item_subject_id(self, item: UserLoad) -> None:
        return None

    async def process_item(self, item: UserLoad) -> None:
        user = await self.store.find_one(User, User.email == item.email)
        if user is None:
            self.log.log_skipped("пользователь не найден", item.email)
            return

        projects = await self.store.find_in(Project, Project.id, item.project_ids)
        recipients = await self.resolver.resolve_for_projects(
            projects,
            roles=OVERALLOCATION_ROLES,
            admin_fallback=True,
            tenant_id=user.tenant_id,
        )
        if not recipients:
            self.log.log_no_recipients(RuleTag.OVERALLOCATION.value, f"user {user.email}")
            return

        subject = SubjectRef(entity_type="user", entity_id=user.id)
        draft = NotificationDraft(
            title="⚠️ Critical Workload Alert",
            message=(
                "⚠️ Resource overallocation detected. Burnout risk possible for "
                f"{user.display_name} ({item.utilization_percent:.0f}% allocated)."
            ),
            link="/ResourcePlanning",
        )
        for recipient in recipients:
            await self.notify(
                recipient, RuleTag.OVERALLOCATION, subject, draft, tenant_id=user.tenant_id
            )


def main() -> None:
    sys.exit(run_job_main(OverallocationJob))


if __name__ == "__main__":
    main()
