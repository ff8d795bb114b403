"""
Доля переделок в табеле сотрудника за последние 7 дней

Выше 25% - критическая тревога, выше 15% - тревога. Тревога открыта, пока
доля держится на своем уровне, и закрывается при переходе на другой.
Переделки ниже 15% - предупреждение не чаще раза в 7 дней.
"""

import sys
from collections.abc import Sequence
from datetime import timedelta

from alert_engine.core.config import settings
from alert_engine.core.constants import (
    HIGH_REWORK_ALARM_PERCENT,
    REWORK_ALARM_PERCENT,
    REWORK_LOOKBACK_DAYS,
)
from alert_engine.core.timeutils import local_now
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.metrics.utilization import ReworkShare, rework_share
from alert_engine.models.notification import RuleTag
from alert_engine.models.timesheet import UserTimesheet
from alert_engine.models.user import User, UserRole, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef
from alert_engine.schemas.snapshots import DailyTimesheetSnapshot

REWORK_LINK = "/Timesheets?tab=rework-info"

ALARM_TAGS = (RuleTag.HIGH_REWORK_ALARM, RuleTag.REWORK_ALARM)


def rework_tag(share: ReworkShare) -> RuleTag | None:
    """Уровень оповещения по доле переделок"""
    if share.rework_minutes <= 0:
        return None
    if share.percent > HIGH_REWORK_ALARM_PERCENT:
        return RuleTag.HIGH_REWORK_ALARM
    if share.percent > REWORK_ALARM_PERCENT:
        return RuleTag.REWORK_ALARM
    return RuleTag.REWORK_ALERT


def _hours(minutes: int) -> str:
    return f"{minutes / 60:.1f}h"


class ReworkAlarmJob(RuleJob[User]):
    """Оповещения о переделках."""

    name = "rework_alarm"
    description = "Оповещения сотрудников о доле переделок в табеле за 7 дней"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        today = local_now(self.now, self.tz_name).date()
        self.since_day = today - timedelta(days=REWORK_LOOKBACK_DAYS)

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User,
            User.status == UserStatus.ACTIVE,
            User.role == UserRole.MEMBER,
            order_by=User.email,
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        rows = await self.store.find(
            UserTimesheet,
            UserTimesheet.user_email == item.email,
            UserTimesheet.timesheet_date >= self.since_day,
        )
        share = rework_share(
            DailyTimesheetSnapshot.model_validate(r, from_attributes=True) for r in rows
        )
        tag = rework_tag(share)
        self.log.debug(
            f"{item.email}: переделки {share.rework_minutes} из {share.total_minutes} мин",
            user_email=item.email,
        )

        for alarm in ALARM_TAGS:
            if alarm != tag:
                self.tally.resolved += await self.dedup.resolve(
                    item.email, alarm, item.id, self.now
                )
        if tag is None:
            return

        await self.notify(
            item,
            tag,
            SubjectRef(entity_type="user", entity_id=item.id),
            self._draft(item, tag, share),
            tenant_id=item.tenant_id,
            data={"rework_percentage": round(share.percent, 1)},
        )

    def _draft(self, user: User, tag: RuleTag, share: ReworkShare) -> NotificationDraft:
        percent = f"{share.percent:.1f}%"
        if tag == RuleTag.HIGH_REWORK_ALARM:
            title = "Critical Rework Detected"
            message = (
                f"Your rework time is at {percent}, exceeding the 25% threshold. "
                "Task assignments are frozen. Peer review required."
            )
        elif tag == RuleTag.REWORK_ALARM:
            title = "High Rework Detected"
            message = (
                f"Your rework time is at {percent}, exceeding the 15% threshold. "
                "Peer review is recommended."
            )
        else:
            title = "Rework Logged"
            message = (
                f"You have logged rework time recently ({percent} of total). "
                "Please ensure quality and clarity of requirements."
            )
        return NotificationDraft(
            title=title,
            message=message,
            link=REWORK_LINK,
            email_data={
                "user_name": user.display_name,
                "user_email": user.email,
                "rework_percent": percent,
                "rework_hours": _hours(share.rework_minutes),
                "total_hours": _hours(share.total_minutes),
                "period": f"since {self.since_day.isoformat()}",
                "timesheets_url": f"{settings.FRONTEND_URL}{REWORK_LINK}",
            },
        )


def main() -> None:
    sys.exit(run_job_main(ReworkAlarmJob))


if __name__ == "__main__":
    main()
