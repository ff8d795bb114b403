"""
Зависшие табели.

Два правила за один проход:
- сотруднику: записи на согласовании дольше 7 дней (одно оповещение на все записи)
- менеджеру: сводка записей, ожидающих его согласования

Оба не чаще раза в локальные сутки.
"""

import sys
from collections.abc import Sequence
from datetime import date, timedelta
from enum import Enum

from pydantic import BaseModel

from alert_engine.core.constants import (
    PENDING_PM_STATUS,
    PENDING_TIMESHEET_DAYS,
    PENDING_TIMESHEET_STATUSES,
)
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.models.notification import RuleTag
from alert_engine.models.timesheet import Timesheet
from alert_engine.models.user import User
from alert_engine.schemas.notification import NotificationDraft


class PendingKind(str, Enum):
    STALE = "stale"
    PM_BACKLOG = "pm_backlog"


class PendingGroup(BaseModel):
    """Сгруппированные записи для одного получателя"""

    kind: PendingKind
    recipient_email: str
    count: int
    first_date: date | None = None


def _stale_message(group: PendingGroup) -> str:
    if group.count == 1 and group.first_date is not None:
        return (
            f"Your timesheet for {group.first_date.isoformat()} has been pending for "
            "over 7 days. Please check with your manager."
        )
    return (
        f"You have {group.count} timesheets that have been pending for over 7 days. "
        "Please check with your manager."
    )


class PendingTimesheetsJob(RuleJob[PendingGroup]):
    """Оповещения о табелях на согласовании."""

    name = "pending_timesheets"
    description = "Напоминания о табелях, зависших на согласовании"

    async def _stale_groups(self) -> list[PendingGroup]:
        entries = await self.store.find(
            Timesheet,
            Timesheet.status.in_(PENDING_TIMESHEET_STATUSES),
            Timesheet.created_at <= self.now - timedelta(days=PENDING_TIMESHEET_DAYS),
            order_by=(Timesheet.user_email, Timesheet.date),
        )
        by_user: dict[str, list[Timesheet]] = {}
        for entry in entries:
            by_user.setdefault(entry.user_email, []).append(entry)
        return [
            PendingGroup(
                kind=PendingKind.STALE,
                recipient_email=email,
                count=len(user_entries),
                first_date=user_entries[0].date,
            )
            for email, user_entries in by_user.items()
        ]

    async def _backlog_groups(self) -> list[PendingGroup]:
        entries = await self.store.find(Timesheet, Timesheet.status == PENDING_PM_STATUS)
        per_project: dict = {}
        for entry in entries:
            if entry.project_id is not None:
                per_project[entry.project_id] = per_project.get(entry.project_id, 0) + 1

        per_manager: dict[str, int] = {}
        for project_id, count in per_project.items():
            for manager in await self.resolver.explicit_role_users(project_id):
                per_manager[manager.email] = per_manager.get(manager.email, 0) + count
        return [
            PendingGroup(kind=PendingKind.PM_BACKLOG, recipient_email=email, count=count)
            for email, count in sorted(per_manager.items())
        ]

    async def fetch_scope(self) -> Sequence[PendingGroup]:
        return [*await self._stale_groups(), *await self._backlog_groups()]

    def describe_item(self, item: PendingGroup) -> str:
        return f"{item.kind.value} {item.recipient_email} ({item.count})"

    def item_subject_id(self, item: PendingGroup) -> None:
        return None

    async def process_item(self, item: PendingGroup) -> None:
        user = await self.store.find_one(User, User.email == item.recipient_email.lower())
        if user is None:
            self.log.log_skipped("пользователь не найден", item.recipient_email)
            return

        if item.kind == PendingKind.STALE:
            await self.notify(
                user,
                RuleTag.PENDING_TIMESHEET,
                None,
                NotificationDraft(
                    title="Action Required: Stale Pending Timesheet",
                    message=_stale_message(item),
                ),
            )
        else:
            await self.notify(
                user,
                RuleTag.PM_APPROVAL_BACKLOG,
                None,
                NotificationDraft(
                    title="Timesheet Approvals Pending",
                    message=(
                        f"You have {item.count} timesheet entries waiting for your approval. "
                        "Please review them in your dashboard."
                    ),
                ),
            )


def main() -> None:
    sys.exit(run_job_main(PendingTimesheetsJob))


if __name__ == "__main__":
    main()
