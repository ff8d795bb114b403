"""
Синхронизация замеров скорости для завершенных и зафиксированных спринтов
"""

import sys
from collections.abc import Sequence

from sqlalchemy import or_

from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.models.sprint import Sprint, SprintStatus
from alert_engine.services.velocity_service import VelocityService


class SprintVelocitySyncJob(RuleJob[Sprint]):
    """Пересчет замеров скорости спринтов."""

    name = "sprint_velocity_sync"
    description = "Пересчет замеров скорости завершенных и зафиксированных спринтов"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.velocity = VelocityService(self.store, self.resolver)
        self.synced = 0

    async def fetch_scope(self) -> Sequence[Sprint]:
        return await self.store.find(
            Sprint,
            or_(Sprint.status == SprintStatus.COMPLETED, Sprint.locked_date.is_not(None)),
            order_by=Sprint.created_at,
        )

    def describe_item(self, item: Sprint) -> str:
        return f"спринт {item.id} '{item.name}' ({item.status})"

    async def process_item(self, item: Sprint) -> None:
        record = await self.velocity.recompute_sprint(item, self.now)
        self.synced += 1
        self.log.info(
            f"Спринт {item.name}: скорость {record.velocity_percentage:.1f}% "
            f"({record.completed_points:g} из {record.committed_points:g})",
            sprint_id=str(item.id),
            is_final=record.is_final_measurement,
        )


def main() -> None:
    sys.exit(run_job_main(SprintVelocitySyncJob))


if __name__ == "__main__":
    main()
