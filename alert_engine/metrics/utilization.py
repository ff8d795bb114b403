"""
Фактическая загрузка по дневным сводкам табеля: переделки, рабочие дни, простой
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict

from alert_engine.core.constants import (
    DEFAULT_WORKING_DAYS,
    DEFAULT_WORKING_HOURS_PER_DAY,
    WORKING_DAYS_LOOKBACK_LIMIT,
    WORKING_DAYS_PER_WEEK,
)
from alert_engine.schemas.snapshots import DailyTimesheetSnapshot

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class ReworkShare(BaseModel):
    """Доля переделок во времени за период"""

    model_config = ConfigDict(frozen=True)

    total_minutes: int
    rework_minutes: int

    @property
    def percent(self) -> float:
        if self.total_minutes <= 0:
            return 0.0
        return self.rework_minutes / self.total_minutes * 100


def rework_share(days: Iterable[DailyTimesheetSnapshot]) -> ReworkShare:
    total = 0
    rework = 0
    for day in days:
        total += day.total_time_submitted_in_day
        rework += day.rework_time_in_day
    return ReworkShare(total_minutes=total, rework_minutes=rework)


def parse_working_days(names: object) -> frozenset[int]:
    """
    Номера рабочих дней (datetime.weekday()) по названиям.

    Принимаются полные и трехбуквенные названия в любом регистре.
    Пустой или некорректный список - понедельник-суббота.
    """
    values = (
        [n.strip().lower() for n in names if isinstance(n, str) and n.strip()]
        if isinstance(names, (list, tuple))
        else []
    )
    if not values:
        values = list(DEFAULT_WORKING_DAYS)
    return frozenset(
        index
        for index, full in enumerate(WEEKDAY_NAMES)
        if full in values or full[:3] in values
    )


def last_working_days(
    today: date,
    working_days: frozenset[int],
    count: int,
    limit: int = WORKING_DAYS_LOOKBACK_LIMIT,
) -> list[date]:
    """До count рабочих дней перед today, от новых к старым (поиск не глубже limit дней)"""
    days: list[date] = []
    day = today
    for _ in range(limit):
        if len(days) >= count:
            break
        day -= timedelta(days=1)
        if day.weekday() in working_days:
            days.append(day)
    return days


def daily_available_minutes(working_hours_per_day: int | float | None) -> float:
    return float(working_hours_per_day or DEFAULT_WORKING_HOURS_PER_DAY) * 60


def idle_percent(logged_minutes: int, available_minutes: float) -> float:
    """Доля незаполненного времени дня, 0 при нулевой доступности"""
    if available_minutes <= 0:
        return 0.0
    return (available_minutes - logged_minutes) / available_minutes * 100


def average_utilization(
    logged_by_day: Mapping[date, int],
    days: Sequence[date],
    available_minutes: float,
) -> float:
    """Средняя загрузка за дни в процентах от доступного времени"""
    if not days or available_minutes <= 0:
        return 0.0
    logged = sum(logged_by_day.get(day, 0) for day in days)
    return logged / (available_minutes * len(days)) * 100


def team_capacity_hours(hours_per_day: Iterable[int | float | None], days: int) -> float:
    """Емкость команды за days календарных дней: days * 5/7 * часы в день каждого"""
    factor = days * WORKING_DAYS_PER_WEEK / 7
    return sum(
        factor * float(hours or DEFAULT_WORKING_HOURS_PER_DAY) for hours in hours_per_day
    )


class TeamUtilization(BaseModel):
    """Загрузка команды проекта за период"""

    model_config = ConfigDict(frozen=True)

    days: int
    capacity_hours: float
    logged_hours: float

    @property
    def percent(self) -> float:
        if self.capacity_hours <= 0:
            return 0.0
        return self.logged_hours / self.capacity_hours * 100
