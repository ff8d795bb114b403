"""
Мало отработанных часов: три последних рабочих дня ниже дневной доступности
"""

import sys
from collections.abc import Sequence

from alert_engine.core.config import settings
from alert_engine.core.constants import LOW_LOGGED_HOURS_DAYS
from alert_engine.core.timeutils import local_now
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.utilization import (
    daily_available_minutes,
    last_working_days,
    parse_working_days,
)
from alert_engine.models.notification import RuleTag
from alert_engine.models.timesheet import UserTimesheet
from alert_engine.models.user import User, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef

TIMESHEETS_LINK = "/Timesheets"


class LowLoggedHoursJob(RuleJob[User]):
    """Оповещения о недоработке по табелю."""

    name = "low_logged_hours"
    description = "Оповещения о часах ниже доступности три рабочих дня подряд"

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User, User.status == UserStatus.ACTIVE, order_by=User.email
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        today = local_now(self.now, self.tz_name).date()
        days = last_working_days(
            today, parse_working_days(item.working_days), LOW_LOGGED_HOURS_DAYS
        )
        if len(days) < LOW_LOGGED_HOURS_DAYS:
            self.log.log_skipped("недостаточно рабочих дней", item.email)
            return

        rows = await self.store.find(
            UserTimesheet,
            UserTimesheet.user_email == item.email,
            UserTimesheet.timesheet_date.in_(days),
        )
        logged = {r.timesheet_date: r.total_time_submitted_in_day or 0 for r in rows}
        available = daily_available_minutes(item.working_hours_per_day)
        if any(logged.get(day, 0) >= available for day in days):
            return

        daily_hours = available / 60
        day_logs = " | ".join(
            f"{day.isoformat()}: {logged.get(day, 0) / 60:g}h/{daily_hours:g}h"
            for day in sorted(days)
        )
        await self.notify(
            item,
            RuleTag.LOW_LOGGED_HOURS,
            SubjectRef(entity_type="user", entity_id=item.id),
            NotificationDraft(
                title="📉 Low Logged Hours Alert",
                message=(
                    "Your logged hours are below your declared availability. "
                    "Please review your workload."
                ),
                link=TIMESHEETS_LINK,
                email_data={
                    "user_name": item.display_name,
                    "user_email": item.email,
                    "daily_hours": f"{daily_hours:g}h",
                    "day_logs": day_logs,
                    "timesheets_url": f"{settings.FRONTEND_URL}{TIMESHEETS_LINK}",
                },
            ),
            tenant_id=item.tenant_id,
        )


def main() -> None:
    sys.exit(run_job_main(LowLoggedHoursJob))


if __name__ == "__main__":
    main()
