"""
Дневные сводки табелей активных сотрудников (upsert по сотруднику и дате)
"""

import sys
from collections.abc import Sequence

from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.compliance import rollup_timesheets
from alert_engine.models.timesheet import Timesheet, UserTimesheet
from alert_engine.models.user import User, UserStatus
from alert_engine.schemas.snapshots import TimesheetSnapshot

DEFAULT_WORK_TYPE = "other"


class TimesheetRollupJob(RuleJob[User]):
    name = "timesheet_rollup"
    description = "Пересчет дневных сводок табелей"

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User, User.status == UserStatus.ACTIVE, order_by=User.email
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        entries = await self.store.find(Timesheet, Timesheet.user_email == item.email)
        rollups = rollup_timesheets(
            TimesheetSnapshot.model_validate(e, from_attributes=True) for e in entries
        )
        for day, rollup in sorted(rollups.items()):
            await self.store.upsert(
                UserTimesheet,
                match={"user_email": item.email, "timesheet_date": day},
                set_fields={
                    "tenant_id": item.tenant_id,
                    "user_id": item.id,
                    "status": rollup.status,
                    "work_type": rollup.work_type or DEFAULT_WORK_TYPE,
                    "total_time_submitted_in_day": rollup.total_minutes,
                    "rework_time_in_day": rollup.rework_minutes,
                    "actual_date": self.now,
                },
            )
        self.log.debug(f"{item.email}: {len(rollups)} дней", user_email=item.email)


def main() -> None:
    sys.exit(run_job_main(TimesheetRollupJob))


if __name__ == "__main__":
    main()
