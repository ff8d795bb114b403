"""
Поощрение за дисциплину: нет нарушений за 30 дней и не было поощрения за 28 дней
"""

import sys
from collections.abc import Sequence
from datetime import timedelta

from alert_engine.core.constants import REWARD_VIOLATION_LOOKBACK_DAYS
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.models.notification import VIOLATION_TYPES, RuleTag
from alert_engine.models.user import User, UserRole, UserStatus
from alert_engine.schemas.notification import NotificationDraft, SubjectRef

EXCLUDED_ROLES = (UserRole.ADMIN, UserRole.OWNER, UserRole.CLIENT)


class ConsistentComplianceJob(RuleJob[User]):
    name = "consistent_compliance"
    description = "Поощрение сотрудников без нарушений за последние 30 дней"

    async def fetch_scope(self) -> Sequence[User]:
        return await self.store.find(
            User,
            User.status == UserStatus.ACTIVE,
            User.role.not_in(EXCLUDED_ROLES),
            order_by=User.email,
        )

    def describe_item(self, item: User) -> str:
        return f"пользователь {item.email}"

    async def process_item(self, item: User) -> None:
        since = self.now - timedelta(days=REWARD_VIOLATION_LOOKBACK_DAYS)
        if await self.dedup.has_recent(item.email, VIOLATION_TYPES, since):
            self.log.log_skipped("есть недавние нарушения", item.email)
            return

        # Окно в 28 дней после прошлого поощрения проверяет контроллер дедупликации
        await self.notify(
            item,
            RuleTag.USER_CONSISTENT,
            SubjectRef(entity_type="user", entity_id=item.id),
            NotificationDraft(
                title="Great job!",
                message=(
                    "You've maintained excellent compliance this month. "
                    "Keep up the great work!"
                ),
            ),
        )


def main() -> None:
    sys.exit(run_job_main(ConsistentComplianceJob))


if __name__ == "__main__":
    main()
