"""
Заполнение табелей: поиск первого незаполненного дня и дневная сводка
"""

from collections.abc import Collection, Iterable, Mapping
from datetime import date, datetime, timedelta

from pydantic import BaseModel, ConfigDict

from alert_engine.core.constants import (
    COMPLIANCE_CUTOFF_HOUR,
    LOCKOUT_WINDOW_DAYS,
    REQUIRED_DAILY_MINUTES,
    REST_WEEKDAY,
    REWORK_WORK_TYPE,
)
from alert_engine.schemas.snapshots import TimesheetSnapshot

EXCLUDED_ROLLUP_STATUSES = frozenset({"rejected"})
UNOFFICIAL_STATUSES = frozenset({"draft", "rejected"})


class DailyRollup(BaseModel):
    """Сводка табеля за день"""

    model_config = ConfigDict(frozen=True)

    day: date
    total_minutes: int
    rework_minutes: int
    status: str
    work_type: str | None = None


def compliance_start_day(local_moment: datetime) -> date:
    """Последний проверяемый день: вчера до 18:00, сегодня после"""
    day = local_moment.date()
    if local_moment.hour < COMPLIANCE_CUTOFF_HOUR:
        day -= timedelta(days=1)
    return day


def first_missing_date(
    minutes_by_day: Mapping[date, int],
    local_moment: datetime,
    required_minutes: int = REQUIRED_DAILY_MINUTES,
) -> date | None:
    """
    Первый (при движении назад) день с недостаточным временем.

    Обход от compliance_start_day до первого числа текущего месяца,
    воскресенья пропускаются. Останавливается на первом пропуске.

    Returns:
        Дата пропуска или None, если все дни заполнены
    """
    first_of_month = local_moment.date().replace(day=1)
    day = compliance_start_day(local_moment)
    while day >= first_of_month:
        if day.weekday() != REST_WEEKDAY and minutes_by_day.get(day, 0) < required_minutes:
            return day
        day -= timedelta(days=1)
    return None


def rollup_timesheets(entries: Iterable[TimesheetSnapshot]) -> dict[date, DailyRollup]:
    """
    Дневные сводки по записям, отклоненные записи не учитываются.

    Статус дня 'submitted', если есть хотя бы одна запись после черновика.
    Вид работы берется из самой поздней записи дня.
    """
    by_day: dict[date, list[TimesheetSnapshot]] = {}
    for entry in entries:
        if entry.status in EXCLUDED_ROLLUP_STATUSES:
            continue
        by_day.setdefault(entry.date, []).append(entry)

    rollups = {}
    for day, day_entries in by_day.items():
        latest = max(day_entries, key=lambda e: e.created_at or datetime.min)
        rollups[day] = DailyRollup(
            day=day,
            total_minutes=sum(e.total_minutes for e in day_entries),
            rework_minutes=sum(
                e.total_minutes for e in day_entries if e.work_type == REWORK_WORK_TYPE
            ),
            status="submitted"
            if any(e.status not in UNOFFICIAL_STATUSES for e in day_entries)
            else "draft",
            work_type=latest.work_type,
        )
    return rollups


def missing_submission_days(
    submitted_days: Collection[date],
    today: date,
    window_days: int = LOCKOUT_WINDOW_DAYS,
) -> list[date]:
    """
    Дни окна без отправленной сводки, от вчера назад.

    Окно - window_days календарных дней до today, воскресенья не проверяются.
    """
    missing = []
    for offset in range(1, window_days + 1):
        day = today - timedelta(days=offset)
        if day.weekday() == REST_WEEKDAY:
            continue
        if day not in submitted_days:
            missing.append(day)
    return missing
