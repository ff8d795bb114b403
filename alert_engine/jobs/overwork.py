"""
Переработка: план сотрудника на текущую неделю больше 66 часов

Сотрудник получает тревогу раз в локальные сутки. Менеджерам организации
открывается оповещение на время перегрузки, оно закрывается, когда план
возвращается в норму.
"""

import sys
from collections.abc import Sequence

from sqlalchemy import func

from alert_engine.core.constants import OVERWORK_WEEKLY_HOURS, TERMINAL_TASK_STATUSES
from alert_engine.core.timeutils import local_week_bounds, start_of_local_day
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.workload import planned_week_hours
from alert_engine.models.notification import RuleTag
from alert_engine.models.task import Task
from alert_engine.models.user import CustomRole, User, UserRole, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import TaskSnapshot
from alert_engine.services.dedup import OpenKey


class OverworkJob(RuleJob[User]):
    """Оповещения о переработке."""

    name = "overwork"
    description = "Оповещения о плане недели сотрудника выше 66 часов"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.week_start, self.week_end = local_week_bounds(self.now, self.tz_name)
        self.today_start = start_of_local_day(self.now, self.tz_name)
        self.open_tasks: list[TaskSnapshot] = []
        self.active_keys: set[OpenKey] = set()

    async def fetch_scope(self) -> Sequence[User]:
        tasks = await self.store.find(
            Task,
            Task.assignees.is_not(None),
            func.lower(func.coalesce(Task.status, "")).not_in(sorted(TERMINAL_TASK_STATUSES)),
        )
        self.open_tasks = [TaskSnapshot.model_validate(t, from_attributes=True) for t in tasks]
        return await self.store.find(
            User,
            User.status == UserStatus.ACTIVE,
            User.role == UserRole.MEMBER,
            order_by=User.email,
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        hours = planned_week_hours(
            item.email, self.open_tasks, self.week_start, self.week_end, self.today_start
        )
        if hours <= OVERWORK_WEEKLY_HOURS:
            return

        self.log.info(f"{item.email}: план недели {hours:.1f} ч", user_email=item.email)
        subject = SubjectRef(entity_type="user", entity_id=item.id)
        await self.notify(
            item,
            RuleTag.OVERWORK_ALARM,
            subject,
            NotificationDraft(
                title="🚨 Overwork Alert",
                message=(
                    "You've been working long hours consistently. Please discuss "
                    "workload adjustment with your manager."
                ),
                email_data={
                    "user_name": item.display_name,
                    "user_email": item.email,
                    "total_hours": f"{hours:.1f}h",
                    "limit_hours": f"{OVERWORK_WEEKLY_HOURS:g}h",
                },
            ),
            tenant_id=item.tenant_id,
        )

        draft = NotificationDraft(
            title="🚨 Overwork Plan Alert",
            message=(
                f"User {item.display_name} is planned for {hours:.1f}h this week "
                "(> Limit). Overtime disabled to prevent burnout."
            ),
        )
        for manager in await self._managers(item):
            self.active_keys.add((manager.email, item.id))
            await self.notify(
                manager, RuleTag.OVERWORK_PLAN, subject, draft, tenant_id=item.tenant_id
            )

    async def _managers(self, user: User) -> list[User]:
        """Активные менеджеры проектов организации сотрудника"""
        if user.tenant_id is None:
            return []
        return await self.store.find(
            User,
            User.tenant_id == user.tenant_id,
            User.custom_role == CustomRole.PROJECT_MANAGER,
            User.status == UserStatus.ACTIVE,
            User.email != user.email,
            order_by=User.email,
        )

    async def finalize(self) -> None:
        self.tally.resolved += await self.dedup.resolve_stale(
            RuleTag.OVERWORK_PLAN, self.active_keys, self.now, skip_entities=self.failed_subjects
        )


def main() -> None:
    sys.exit(run_job_main(OverworkJob))


if __name__ == "__main__":
    main()
