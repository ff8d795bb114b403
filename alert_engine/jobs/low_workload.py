"""
Недогрузка за неделю: оповещение сотрудника и менеджеров его проектов
"""

import sys
from collections.abc import Sequence

from sqlalchemy import func

from alert_engine.core.constants import TERMINAL_TASK_STATUSES
from alert_engine.core.timeutils import local_week_bounds
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.workload import (
    is_underloaded,
    weekly_assigned_hours,
    weekly_capacity,
)
from alert_engine.models.notification import RuleTag
from alert_engine.models.project import Project
from alert_engine.models.task import Task
from alert_engine.models.user import User, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import TaskSnapshot
from alert_engine.services.dedup import OpenKey

MANAGER_RULE_ID = "MANAGER_LOW_WORKLOAD"


def _hours(value: float) -> str:
    return f"{value:g}"


class LowWorkloadJob(RuleJob[User]):
    """Оповещения о недогрузке сотрудников."""

    name = "low_workload"
    description = "Оповещения о загрузке ниже 70% недельной емкости"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.week_start, self.week_end = local_week_bounds(self.now, self.tz_name)
        self.week_tasks: list[TaskSnapshot] = []
        self.active_keys: set[OpenKey] = set()

    async def fetch_scope(self) -> Sequence[User]:
        tasks = await self.store.find(
            Task,
            Task.due_date >= self.week_start,
            Task.due_date < self.week_end,
            func.lower(func.coalesce(Task.status, "")).not_in(sorted(TERMINAL_TASK_STATUSES)),
        )
        self.week_tasks = [TaskSnapshot.model_validate(t, from_attributes=True) for t in tasks]
        return await self.store.find(
            User, User.status == UserStatus.ACTIVE, order_by=User.email
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        capacity = weekly_capacity(item.working_hours_per_day)
        hours = weekly_assigned_hours(item.email, self.week_tasks, self.week_start, self.week_end)
        self.log.debug(
            f"{item.email}: {_hours(hours)} / {_hours(capacity)} ч",
            user_email=item.email,
        )
        if not is_underloaded(hours, capacity):
            return

        subject = SubjectRef(entity_type="user", entity_id=item.id)
        self.active_keys.add((item.email, item.id))
        await self.notify(
            item,
            RuleTag.LOW_WORKLOAD,
            subject,
            NotificationDraft(
                title="📉 Low Workload Alert",
                message=(
                    f"Low Hours Detected: {_hours(hours)} hrs / {_hours(capacity)} hrs "
                    "capacity this week."
                ),
            ),
        )
        await self._notify_managers(item, subject, hours, capacity)

    async def _notify_managers(
        self, user: User, subject: SubjectRef, hours: float, capacity: float
    ) -> None:
        """Менеджеры проектов, в команде которых состоит сотрудник"""
        projects = [
            project
            for project in await self.store.find(Project, Project.tenant_id == user.tenant_id)
            if project.has_member(user.email)
        ]
        managers = await self.resolver.resolve_for_projects(
            projects, exclude_emails=[user.email]
        )
        name = user.display_name
        draft = NotificationDraft(
            title=f"📉 Low Workload: {name}",
            message=(
                f"{name} has only {_hours(hours)} hrs assigned this week "
                f"(<70% of {_hours(capacity)})."
            ),
            rule_id=MANAGER_RULE_ID,
        )
        for manager in managers:
            self.active_keys.add((manager.email, user.id))
            await self.notify(manager, RuleTag.LOW_WORKLOAD, subject, draft)

    async def finalize(self) -> None:
        self.tally.resolved += await self.dedup.resolve_stale(
            RuleTag.LOW_WORKLOAD, self.active_keys, self.now, skip_entities=self.failed_subjects
        )


def main() -> None:
    sys.exit(run_job_main(LowWorkloadJob))


if __name__ == "__main__":
    main()
