from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from slush.config import settings

WEEK = timedelta(days=7)


def local_now() -> datetime:
    """Naive wall-clock time in the configured zone (host local time if unset)."""
    if settings.timezone:
        return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)
    return datetime.now()


def week_start(offset: int = 0, now: datetime | None = None) -> datetime:
    now = now or local_now()
    monday = now.date() - timedelta(days=now.weekday())
    return datetime.combine(monday, time.min) + offset * WEEK


def week_end(offset: int = 0, now: datetime | None = None) -> datetime:
    # Sunday 23:59:59.999999, inclusive.
    return week_start(offset, now) + WEEK - timedelta(microseconds=1)


def week_bounds(offset: int = 0, now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or local_now()
    return week_start(offset, now), week_end(offset, now)


def week_offset_of(day: date, now: datetime | None = None) -> int:
    """Offset of the week containing ``day`` relative to the week containing ``now``."""
    now = now or local_now()
    current = week_start(0, now).date()
    monday = day - timedelta(days=day.weekday())
    return (monday - current).days // 7
