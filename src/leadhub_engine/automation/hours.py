"""Business-hours window arithmetic."""

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_START = time(9, 0)
DEFAULT_END = time(18, 0)
DAYS_IN_WEEK = 7


def default_week(tz_name: str) -> list[dict]:
    """Monday to Friday 09:00-18:00 enabled, weekend disabled (0 = Sunday)."""
    return [
        {
            "day_of_week": day,
            "is_enabled": 1 <= day <= 5,
            "start_time": DEFAULT_START,
            "end_time": DEFAULT_END,
            "timezone": tz_name,
        }
        for day in range(DAYS_IN_WEEK)
    ]


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def localize(moment: datetime, tz_name: str) -> datetime:
    """Convert ``moment`` to ``tz_name``; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name))


def day_index(moment: datetime) -> int:
    """Weekday with 0 = Sunday."""
    return (moment.weekday() + 1) % DAYS_IN_WEEK


def within_window(local: datetime, start: time, end: time) -> bool:
    """Half-open ``[start, end)`` check on the wall-clock time of ``local``."""
    now = local.time().replace(tzinfo=None)
    return start <= now < end
