"""
Доля просроченных задач спринта: тревога менеджерам при превышении 20%

Повтор по тому же спринту не чаще раза в 24 часа, --force обходит окно.
"""

import sys
from collections.abc import Sequence

from sqlalchemy.future import select

from alert_engine.core.config import settings
from alert_engine.core.constants import SPRINT_OVERDUE_RATIO_THRESHOLD
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.overdue import overdue_ratio, overdue_tasks
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project
from alert_engine.models.sprint import Sprint
from alert_engine.models.task import Task
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import TaskSnapshot

# Сколько названий задач показывать в письме
EMAIL_TASK_TITLES_LIMIT = 5


class SprintOverdueRatioJob(RuleJob[Sprint]):
    """Тревога о здоровье спринта."""

    name = "sprint_overdue_ratio"
    description = "Тревога менеджерам при доле просроченных задач спринта больше 20%"
    supports_force = True

    async def fetch_scope(self) -> Sequence[Sprint]:
        return await self.store.find(
            Sprint,
            Sprint.id.in_(select(Task.sprint_id).where(Task.sprint_id.is_not(None))),
            order_by=Sprint.created_at,
        )

    def describe_item(self, item: Sprint) -> str:
        return f"спринт {item.id} '{item.name}'"

    async def process_item(self, item: Sprint) -> None:
        tasks = [
            TaskSnapshot.model_validate(task, from_attributes=True)
            for task in await self.store.find(Task, Task.sprint_id == item.id)
        ]
        if not tasks:
            return

        ratio = overdue_ratio(tasks, self.now)
        overdue = overdue_tasks(tasks, self.now)
        self.log.debug(
            f"Спринт {item.name}: задач {len(tasks)}, просрочено {len(overdue)} "
            f"({ratio * 100:.2f}%)",
            sprint_id=str(item.id),
        )
        if ratio <= SPRINT_OVERDUE_RATIO_THRESHOLD:
            return

        project = await self.store.get(Project, item.project_id) if item.project_id else None
        managers = (
            await self.resolver.resolve(project, admin_fallback=True) if project else []
        )
        if not managers:
            self.log.log_no_recipients(
                RuleTag.SPRINT_OVERDUE_TASKS.value, f"sprint {item.id}"
            )
            return

        link = f"/ProjectDetail?id={item.project_id}&sprintId={item.id}"
        subject = SubjectRef(entity_type="sprint", entity_id=item.id, project_id=item.project_id)
        percent = f"{ratio * 100:.1f}%"

        for manager in managers:
            draft = NotificationDraft(
                title=f"🚨 ALARM: Sprint Health at Risk ({item.name})",
                message=(
                    f"⚠️ Multiple overdue tasks detected ({len(overdue)} tasks / {percent}). "
                    f"Suggest reprioritization for Sprint: {item.name}."
                ),
                link=link,
                email_data={
                    "recipient_name": manager.display_name,
                    "recipient_email": manager.email,
                    "sprint_name": item.name,
                    "overdue_count": len(overdue),
                    "overdue_percent": percent,
                    "task_titles": ", ".join(
                        t.title for t in overdue[:EMAIL_TASK_TITLES_LIMIT]
                    ),
                    "dashboard_url": f"{settings.FRONTEND_URL}{link}",
                },
            )
            await self.notify(
                manager,
                RuleTag.SPRINT_OVERDUE_TASKS,
                subject,
                draft,
                tenant_id=item.tenant_id,
            )


def main() -> None:
    sys.exit(run_job_main(SprintOverdueRatioJob))


if __name__ == "__main__":
    main()
