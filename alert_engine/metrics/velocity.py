"""
Скорость спринта с частичным зачетом историй и тренд скорости проекта
"""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from alert_engine.core.constants import (
    COMPLETED_TASK_STATUS,
    DONE_STORY_STATUSES,
    LOW_VELOCITY_THRESHOLD_PERCENT,
)
from alert_engine.schemas.snapshots import (
    SprintSnapshot,
    StorySnapshot,
    TaskSnapshot,
    VelocityRecordSnapshot,
)

IN_PROGRESS_STATUSES = frozenset({"in_progress", "in progress"})
NOT_STARTED_STATUSES = frozenset({"todo", "to do"})


class VelocityMetrics(BaseModel):
    """Метрики скорости спринта"""

    model_config = ConfigDict(frozen=True)

    committed_points: float
    completed_points: float
    velocity_percentage: float
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    not_started_tasks: int
    total_stories: int
    completed_stories: int
    impediments_count: int


class VelocityTrend(BaseModel):
    """Тренд скорости по двум последним спринтам проекта"""

    model_config = ConfigDict(frozen=True)

    latest: VelocityRecordSnapshot
    previous: VelocityRecordSnapshot | None = None
    is_drop: bool
    is_consistent_drop: bool


def _points(value: float | None) -> float:
    # Отрицательные и пустые оценки не учитываются
    return max(float(value or 0), 0.0)


def is_task_completed(task: TaskSnapshot) -> bool:
    """Задача выполнена только в статусе 'completed'"""
    return task.status == COMPLETED_TASK_STATUS


def is_story_done(story: StorySnapshot) -> bool:
    """История закрыта (done/completed без учета регистра)"""
    return (story.status or "").lower() in DONE_STORY_STATUSES


def story_credit(story: StorySnapshot, story_tasks: Sequence[TaskSnapshot]) -> float:
    """
    Вклад истории в выполненные очки.

    Закрытая история дает все очки, история без задач - 0,
    иначе очки пропорционально доле выполненных задач.
    Результат всегда в диапазоне [0, story_points].
    """
    points = _points(story.story_points)
    if is_story_done(story):
        return points
    if not story_tasks:
        return 0.0
    completed = sum(1 for task in story_tasks if is_task_completed(task))
    return points * (completed / len(story_tasks))


def committed_points(sprint: SprintSnapshot, stories: Iterable[StorySnapshot]) -> float:
    """Зафиксированный объем: значение спринта либо сумма очков историй"""
    if sprint.committed_points is not None:
        return _points(sprint.committed_points)
    return sum(_points(story.story_points) for story in stories)


def velocity_percentage(completed: float, committed: float) -> float:
    """Процент скорости, 0 при пустом объеме"""
    if committed <= 0:
        return 0.0
    return max(completed, 0.0) / committed * 100


def sprint_tasks(
    sprint: SprintSnapshot,
    stories: Sequence[StorySnapshot],
    tasks: Iterable[TaskSnapshot],
) -> list[TaskSnapshot]:
    """Задачи спринта: привязанные к спринту или к его историям"""
    story_ids = {story.id for story in stories}
    return [
        task
        for task in tasks
        if task.sprint_id == sprint.id or (task.story_id is not None and task.story_id in story_ids)
    ]


def compute_sprint_velocity(
    sprint: SprintSnapshot,
    stories: Sequence[StorySnapshot],
    tasks: Iterable[TaskSnapshot],
) -> VelocityMetrics:
    """Полный набор метрик скорости спринта"""
    stories = [story for story in stories if story.sprint_id == sprint.id]
    scoped = sprint_tasks(sprint, stories, tasks)

    tasks_by_story: dict = {}
    for task in scoped:
        if task.story_id is not None:
            tasks_by_story.setdefault(task.story_id, []).append(task)

    committed = committed_points(sprint, stories)
    completed = sum(
        story_credit(story, tasks_by_story.get(story.id, [])) for story in stories
    )

    completed_stories = 0
    for story in stories:
        children = tasks_by_story.get(story.id, [])
        if is_story_done(story) or (children and all(is_task_completed(t) for t in children)):
            completed_stories += 1

    return VelocityMetrics(
        committed_points=committed,
        completed_points=completed,
        velocity_percentage=velocity_percentage(completed, committed),
        total_tasks=len(scoped),
        completed_tasks=sum(1 for t in scoped if is_task_completed(t)),
        in_progress_tasks=sum(1 for t in scoped if t.status in IN_PROGRESS_STATUSES),
        not_started_tasks=sum(1 for t in scoped if t.status in NOT_STARTED_STATUSES),
        total_stories=len(stories),
        completed_stories=completed_stories,
        impediments_count=len(sprint.impediments),
    )


def latest_per_sprint(
    records: Iterable[VelocityRecordSnapshot],
) -> list[VelocityRecordSnapshot]:
    """
    Последний замер каждого спринта, от новых спринтов к старым.

    Сортировка по дате окончания спринта, затем по дате замера.
    """
    ordered = sorted(
        records,
        key=lambda r: (
            r.sprint_end_date is not None,
            r.sprint_end_date or r.measurement_date.date(),
            r.measurement_date,
        ),
        reverse=True,
    )
    seen: set = set()
    result = []
    for record in ordered:
        if record.sprint_id in seen:
            continue
        seen.add(record.sprint_id)
        result.append(record)
    return result


def velocity_trend(
    records: Iterable[VelocityRecordSnapshot],
    threshold: float = LOW_VELOCITY_THRESHOLD_PERCENT,
) -> VelocityTrend | None:
    """Тренд по двум последним спринтам (None - замеров нет)"""
    latest_sprints = latest_per_sprint(records)[:2]
    if not latest_sprints:
        return None

    latest = latest_sprints[0]
    previous = latest_sprints[1] if len(latest_sprints) > 1 else None
    is_drop = latest.velocity_percentage < threshold
    return VelocityTrend(
        latest=latest,
        previous=previous,
        is_drop=is_drop,
        is_consistent_drop=is_drop
        and previous is not None
        and previous.velocity_percentage < threshold,
    )
