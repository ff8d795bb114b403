"""
Работа со временем

Все метки времени в хранилище - наивные UTC. Локальная зона нужна только
для границ суток ("с начала сегодняшнего дня", отсечка 18:00).
"""

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from alert_engine.core.config import settings
from alert_engine.exceptions import ConfigurationError


def utcnow() -> datetime:
    """Текущее время в наивном UTC"""
    return datetime.now(UTC).replace(tzinfo=None)


def get_local_zone(tz_name: str | None = None) -> ZoneInfo:
    """
    Локальная временная зона из настроек

    Raises:
        ConfigurationError: Неизвестная временная зона
    """
    name = tz_name or settings.TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(
            f"Неизвестная временная зона: {name}", setting="TIMEZONE"
        ) from exc


def to_local(moment: datetime, tz_name: str | None = None) -> datetime:
    """Перевод наивного UTC во время локальной зоны"""
    return moment.replace(tzinfo=UTC).astimezone(get_local_zone(tz_name))


def local_now(now: datetime | None = None, tz_name: str | None = None) -> datetime:
    """Текущее локальное время (aware)"""
    return to_local(now or utcnow(), tz_name)


def start_of_local_day(
    now: datetime | None = None, tz_name: str | None = None
) -> datetime:
    """Начало текущих локальных суток в наивном UTC"""
    local = local_now(now, tz_name)
    midnight = datetime.combine(local.date(), time.min, tzinfo=local.tzinfo)
    return midnight.astimezone(UTC).replace(tzinfo=None)


def start_of_iso_week(day: date) -> date:
    """Понедельник недели, содержащей день"""
    return day - timedelta(days=day.weekday())


def local_week_bounds(
    now: datetime | None = None, tz_name: str | None = None
) -> tuple[datetime, datetime]:
    """Текущая локальная неделя (понедельник - воскресенье) в наивном UTC"""
    local = local_now(now, tz_name)
    monday = start_of_iso_week(local.date())
    start = datetime.combine(monday, time.min, tzinfo=local.tzinfo)
    end = datetime.combine(monday + timedelta(days=7), time.min, tzinfo=local.tzinfo)
    return (
        start.astimezone(UTC).replace(tzinfo=None),
        end.astimezone(UTC).replace(tzinfo=None),
    )
