"""
Простой и недогрузка по табелю

Простой: в последний рабочий день не заполнено больше 25% доступного
времени. Недогрузка: средняя загрузка за 30 рабочих дней ниже 60%.
"""

import sys
from collections.abc import Sequence

from alert_engine.core.constants import (
    IDLE_TIME_THRESHOLD_PERCENT,
    UNDER_UTILIZATION_DAYS,
    UNDER_UTILIZATION_THRESHOLD_PERCENT,
)
from alert_engine.core.timeutils import local_now
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.utilization import (
    average_utilization,
    daily_available_minutes,
    idle_percent,
    last_working_days,
    parse_working_days,
)
from alert_engine.models.notification import RuleTag
from alert_engine.models.timesheet import UserTimesheet
from alert_engine.models.user import User, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef


class UtilizationJob(RuleJob[User]):
    """Оповещения о простое и недогрузке."""

    name = "utilization"
    description = "Оповещения о простое за рабочий день и недогрузке за 30 рабочих дней"

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User, User.status == UserStatus.ACTIVE, order_by=User.email
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        today = local_now(self.now, self.tz_name).date()
        days = last_working_days(
            today, parse_working_days(item.working_days), UNDER_UTILIZATION_DAYS
        )
        if not days:
            self.log.log_skipped("нет рабочих дней", item.email)
            return

        rows = await self.store.find(
            UserTimesheet,
            UserTimesheet.user_email == item.email,
            UserTimesheet.timesheet_date >= days[-1],
            UserTimesheet.timesheet_date < today,
        )
        logged = {r.timesheet_date: r.total_time_submitted_in_day or 0 for r in rows}
        available = daily_available_minutes(item.working_hours_per_day)
        subject = SubjectRef(entity_type="user", entity_id=item.id)

        idle = idle_percent(logged.get(days[0], 0), available)
        if idle > IDLE_TIME_THRESHOLD_PERCENT:
            await self.notify(
                item,
                RuleTag.IDLE_TIME,
                subject,
                NotificationDraft(
                    title="Significant Idle Time Detected",
                    message=(
                        f"Significant idle time detected ({idle:.1f}%). "
                        "Please check task allocation."
                    ),
                ),
                tenant_id=item.tenant_id,
                data={"date": days[0].isoformat(), "idle_percentage": round(idle, 1)},
            )

        utilization = average_utilization(logged, days, available)
        if utilization < UNDER_UTILIZATION_THRESHOLD_PERCENT:
            logged_minutes = sum(logged.get(day, 0) for day in days)
            await self.notify(
                item,
                RuleTag.UNDER_UTILIZATION,
                subject,
                NotificationDraft(
                    title="Under-Utilization Alert",
                    message=(
                        f"You appear under-utilized ({utilization:.1f}% over last "
                        f"{len(days)} days). Please discuss allocation with your manager."
                    ),
                    email_data={
                        "user_name": item.display_name,
                        "user_email": item.email,
                        "utilization_percent": f"{utilization:.1f}%",
                        "logged_hours": f"{logged_minutes / 60:.1f}h",
                        "available_hours": f"{available * len(days) / 60:g}h",
                    },
                ),
                tenant_id=item.tenant_id,
            )


def main() -> None:
    sys.exit(run_job_main(UtilizationJob))


if __name__ == "__main__":
    main()
