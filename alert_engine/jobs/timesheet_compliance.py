"""
Обязательное заполнение табеля: 8 часов за каждый рабочий день месяца

Открытое оповещение обновляется при повторных проходах и закрывается,
когда пропусков не осталось.
"""

import sys
from collections.abc import Sequence

from sqlalchemy import and_, or_

from alert_engine.core.config import settings
from alert_engine.core.timeutils import local_now
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.compliance import first_missing_date, rollup_timesheets
from alert_engine.models.notification import RuleTag
from alert_engine.models.timesheet import Timesheet
from alert_engine.models.user import CustomRole, User, UserRole, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import TimesheetSnapshot

TIMESHEETS_LINK = "/Timesheets"


class TimesheetComplianceJob(RuleJob[User]):
    """Контроль пропущенных дней в табеле."""

    name = "timesheet_compliance"
    description = "Оповещения о днях без обязательных 8 часов в табеле"

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User,
            User.status == UserStatus.ACTIVE,
            or_(
                User.role != UserRole.ADMIN,
                and_(
                    User.role == UserRole.ADMIN,
                    User.custom_role == CustomRole.PROJECT_MANAGER,
                ),
            ),
            order_by=User.email,
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        moment = local_now(self.now, self.tz_name)
        first_of_month = moment.date().replace(day=1)
        entries = await self.store.find(
            Timesheet,
            Timesheet.user_email == item.email,
            Timesheet.date >= first_of_month,
        )
        rollups = rollup_timesheets(
            TimesheetSnapshot.model_validate(e, from_attributes=True) for e in entries
        )
        minutes_by_day = {day: rollup.total_minutes for day, rollup in rollups.items()}

        missing = first_missing_date(minutes_by_day, moment)
        if missing is None:
            self.tally.resolved += await self.dedup.resolve(
                item.email, RuleTag.TIMESHEET_MISSING, item.id, self.now
            )
            return

        await self.notify(
            item,
            RuleTag.TIMESHEET_MISSING,
            SubjectRef(entity_type="user", entity_id=item.id),
            NotificationDraft(
                title="Missing Timesheet Entry Required",
                message=(
                    f"Mandatory: 8 hours required for {missing.isoformat()}. "
                    "Please log your pending hours."
                ),
                link=TIMESHEETS_LINK,
                email_data={
                    "user_name": item.display_name,
                    "user_email": item.email,
                    "missing_date": missing,
                    "logged_minutes": minutes_by_day.get(missing, 0),
                    "timesheets_url": f"{settings.FRONTEND_URL}{TIMESHEETS_LINK}",
                },
            ),
        )


def main() -> None:
    sys.exit(run_job_main(TimesheetComplianceJob))


if __name__ == "__main__":
    main()
