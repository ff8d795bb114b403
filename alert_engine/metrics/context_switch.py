"""
Частота переключения контекста между проектами
"""

from collections.abc import Iterable
from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict

from alert_engine.core.constants import (
    CONTEXT_SWITCH_PROJECT_THRESHOLD,
    CONTEXT_SWITCH_REPEAT_THRESHOLD,
    CONTEXT_SWITCH_WINDOW_DAYS,
)
from alert_engine.schemas.snapshots import TimesheetSnapshot


class ContextSwitchReport(BaseModel):
    """Дни с частым переключением за окно"""

    model_config = ConfigDict(frozen=True)

    projects_per_day: dict[date, int]
    high_switch_days: tuple[date, ...]

    @property
    def flagged(self) -> bool:
        return len(self.high_switch_days) >= CONTEXT_SWITCH_REPEAT_THRESHOLD

    def describe(self) -> str:
        """Детали для лога: 'дата: N projects | ...'"""
        return " | ".join(
            f"{day.isoformat()}: {self.projects_per_day[day]} projects"
            for day in self.high_switch_days
        )


def window_start(today: date, window_days: int = CONTEXT_SWITCH_WINDOW_DAYS) -> date:
    """Первый день скользящего окна"""
    return today - timedelta(days=window_days)


def projects_per_day(
    entries: Iterable[TimesheetSnapshot], since: date, until: date
) -> dict[date, int]:
    """Число различных проектов по календарным дням окна"""
    projects: dict[date, set] = {}
    for entry in entries:
        if not since <= entry.date <= until:
            continue
        day_projects = projects.setdefault(entry.date, set())
        if entry.project_id is not None:
            day_projects.add(entry.project_id)
    return {day: len(ids) for day, ids in projects.items()}


def context_switch_report(
    entries: Iterable[TimesheetSnapshot],
    today: date,
    window_days: int = CONTEXT_SWITCH_WINDOW_DAYS,
    threshold: int = CONTEXT_SWITCH_PROJECT_THRESHOLD,
) -> ContextSwitchReport:
    """Отчет о переключениях: день считается частым при числе проектов больше порога"""
    counts = projects_per_day(entries, window_start(today, window_days), today)
    high = tuple(sorted(day for day, count in counts.items() if count > threshold))
    return ContextSwitchReport(projects_per_day=counts, high_switch_days=high)
