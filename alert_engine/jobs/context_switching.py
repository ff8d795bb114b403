"""
Частое переключение между проектами за последние 7 дней
"""

import sys
from collections.abc import Sequence

from alert_engine.core.timeutils import to_local
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.context_switch import context_switch_report, window_start
from alert_engine.models.notification import RuleTag
from alert_engine.models.timesheet import Timesheet
from alert_engine.models.user import User, UserStatus
from alert_engine.schemas.notification import NotificationDraft
from alert_engine.schemas.snapshots import TimesheetSnapshot


class ContextSwitchingJob(RuleJob[User]):
    name = "context_switching"
    description = "Оповещения о частом переключении между проектами"

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User, User.status == UserStatus.ACTIVE, order_by=User.email
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        today = to_local(self.now, self.tz_name).date()
        entries = await self.store.find(
            Timesheet,
            Timesheet.user_email == item.email,
            Timesheet.date >= window_start(today),
        )
        if not entries:
            return

        report = context_switch_report(
            [TimesheetSnapshot.model_validate(e, from_attributes=True) for e in entries],
            today,
        )
        if not report.flagged:
            return

        self.log.info(
            f"{item.email}: частое переключение ({report.describe()})",
            user_email=item.email,
        )
        await self.notify(
            item,
            RuleTag.CONTEXT_SWITCHING,
            None,
            NotificationDraft(
                title="⚠️ Context Switching Alert",
                message="Frequent context switching detected. This may reduce productivity.",
            ),
        )


def main() -> None:
    sys.exit(run_job_main(ContextSwitchingJob))


if __name__ == "__main__":
    main()
