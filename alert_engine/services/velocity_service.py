"""
Пересчет замеров скорости спринтов.

Явный этап пайплайна: вызывается заданием синхронизации или кодом записи
задачи (on_task_saved), а не хуками ORM.
"""

import uuid
from datetime import datetime

from sqlalchemy import or_

from alert_engine.metrics.velocity import compute_sprint_velocity
from alert_engine.models.project import Project
from alert_engine.models.sprint import Sprint, SprintStatus, SprintVelocity
from alert_engine.models.task import Story, Task
from alert_engine.schemas.snapshots import SprintSnapshot, StorySnapshot, TaskSnapshot
from alert_engine.services.entity_store import EntityStore
from alert_engine.services.recipient_resolver import RecipientResolver

SYSTEM_RECORDER = "system"


def is_measurable(sprint: Sprint) -> bool:
    """Замер пишется для завершенных или зафиксированных спринтов"""
    return sprint.status == SprintStatus.COMPLETED or sprint.is_locked


class VelocityService:
    """Сервис замеров скорости."""

    def __init__(self, store: EntityStore, resolver: RecipientResolver | None = None):
        self.store = store
        self.resolver = resolver or RecipientResolver(store)

    async def _recorded_by(self, sprint: Sprint) -> str:
        if sprint.project_id is None:
            return SYSTEM_RECORDER
        project = await self.store.get(Project, sprint.project_id)
        if project is None:
            return SYSTEM_RECORDER
        managers = await self.resolver.resolve(project)
        return managers[0].email if managers else SYSTEM_RECORDER

    async def recompute_sprint(self, sprint: Sprint, now: datetime) -> SprintVelocity:
        """Пересчитать и сохранить замер спринта (upsert по спринту и признаку финальности)"""
        stories = await self.store.find(Story, Story.sprint_id == sprint.id)
        story_ids = [story.id for story in stories]
        task_conditions = [Task.sprint_id == sprint.id]
        if story_ids:
            task_conditions.append(Task.story_id.in_(story_ids))
        tasks = await self.store.find(Task, or_(*task_conditions))

        metrics = compute_sprint_velocity(
            SprintSnapshot.model_validate(sprint, from_attributes=True),
            [StorySnapshot.model_validate(s, from_attributes=True) for s in stories],
            [TaskSnapshot.model_validate(t, from_attributes=True) for t in tasks],
        )

        is_final = sprint.status == SprintStatus.COMPLETED
        return await self.store.upsert(
            SprintVelocity,
            match={"sprint_id": sprint.id, "is_final_measurement": is_final},
            set_fields={
                "tenant_id": sprint.tenant_id,
                "project_id": sprint.project_id,
                "sprint_name": sprint.name,
                "sprint_status": sprint.status,
                "sprint_start_date": sprint.start_date,
                "sprint_end_date": sprint.end_date,
                **metrics.model_dump(),
                "measurement_date": now,
                "recorded_by": await self._recorded_by(sprint),
            },
        )

    async def on_task_saved(self, task: Task, now: datetime) -> SprintVelocity | None:
        """Пересчет замера спринта, к которому относится сохраненная задача"""
        sprint_id: uuid.UUID | None = task.sprint_id
        if sprint_id is None and task.story_id is not None:
            story = await self.store.get(Story, task.story_id)
            sprint_id = story.sprint_id if story else None
        if sprint_id is None:
            return None

        sprint = await self.store.get(Sprint, sprint_id)
        if sprint is None or not is_measurable(sprint):
            return None
        return await self.recompute_sprint(sprint, now)
