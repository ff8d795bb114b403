"""
Просроченные задачи: оповещение исполнителя (от 2 дней) и эскалация менеджерам (от 5 дней)
"""

import sys
from collections.abc import Sequence

from sqlalchemy import func

from alert_engine.core.config import settings
from alert_engine.core.constants import TERMINAL_TASK_STATUSES
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.overdue import (
    needs_assignee_alert,
    needs_escalation,
    task_days_overdue,
)
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project
from alert_engine.models.task import Task
from alert_engine.models.user import CustomRole, User
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import TaskSnapshot
from alert_engine.services.dedup import OpenKey


class TaskOverdueJob(RuleJob[Task]):
    """Оповещения о просроченных задачах."""

    name = "task_overdue"
    description = "Оповещения о просроченных задачах и эскалация менеджерам"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.active_keys: dict[RuleTag, set[OpenKey]] = {
            RuleTag.TASK_OVERDUE: set(),
            RuleTag.TASK_ESCALATION: set(),
        }

    async def fetch_scope(self) -> Sequence[Task]:
        return await self.store.find(
            Task,
            Task.due_date.is_not(None),
            Task.due_date < self.now,
            func.lower(func.coalesce(Task.status, "")).not_in(sorted(TERMINAL_TASK_STATUSES)),
            order_by=Task.due_date,
        )

    def describe_item(self, item: Task) -> str:
        return f"задача {item.id} '{item.title}'"

    async def process_item(self, item: Task) -> None:
        task = TaskSnapshot.model_validate(item, from_attributes=True)
        days = task_days_overdue(task, self.now)
        if not needs_assignee_alert(days):
            return

        subject = SubjectRef(entity_type="task", entity_id=task.id, project_id=task.project_id)
        link = f"/ProjectDetail?id={task.project_id}" if task.project_id else None
        due = task.due_date.date().isoformat() if task.due_date else ""

        await self._notify_assignees(task, subject, days, due, link)
        if needs_escalation(days):
            await self._escalate(task, subject, days, link)

    async def _notify_assignees(
        self,
        task: TaskSnapshot,
        subject: SubjectRef,
        days: int,
        due: str,
        link: str | None,
    ) -> None:
        """Оповещение исполнителей с прикладной ролью viewer"""
        assignees = await self.store.find_in(User, User.email, task.assignees)
        draft = NotificationDraft(
            title=f"🚨 Task Overdue ({days} Days)",
            message=(
                f'Task "{task.title}" is overdue by {days} days. due date was {due}. '
                "Immediate action required."
            ),
            link=link,
        )
        for user in sorted(assignees, key=lambda u: u.email):
            if user.custom_role != CustomRole.VIEWER:
                continue
            self.active_keys[RuleTag.TASK_OVERDUE].add((user.email, task.id))
            await self.notify(user, RuleTag.TASK_OVERDUE, subject, draft)

    async def _escalate(
        self, task: TaskSnapshot, subject: SubjectRef, days: int, link: str | None
    ) -> None:
        """Эскалация менеджерам проекта"""
        project = await self.store.get(Project, task.project_id) if task.project_id else None
        managers = await self.resolver.resolve(project) if project else []
        if not managers:
            self.log.log_no_recipients(RuleTag.TASK_ESCALATION.value, f"task {task.id}")
            return

        for manager in managers:
            self.active_keys[RuleTag.TASK_ESCALATION].add((manager.email, task.id))
            draft = NotificationDraft(
                title=f"🔥 Escalation: Task Overdue ({days} Days)",
                message=(
                    f'ESCALATION: Task "{task.title}" is overdue by {days} days. '
                    "Immediate intervention required."
                ),
                link=link,
                email_data={
                    "recipient_name": manager.display_name,
                    "task_title": task.title,
                    "project_name": project.name if project else "",
                    "assignees": ", ".join(task.assignees),
                    "days_overdue": days,
                    "task_url": f"{settings.FRONTEND_URL}{link}" if link else None,
                },
            )
            await self.notify(manager, RuleTag.TASK_ESCALATION, subject, draft)

    async def finalize(self) -> None:
        for tag, keys in self.active_keys.items():
            self.tally.resolved += await self.dedup.resolve_stale(
                tag, keys, self.now, skip_entities=self.failed_subjects
            )


def main() -> None:
    sys.exit(run_job_main(TaskOverdueJob))


if __name__ == "__main__":
    main()
