"""Calendar-day helpers.

Every comparison in the engine happens on ``YYYY-MM-DD`` strings in device
local time. These helpers are the only place where dates, datetimes and wire
strings are turned into that form.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union

DayLike = Union[str, date, datetime]

DAY_FORMAT_LENGTH = 10


def today_key() -> str:
    """Today's calendar day in device-local time."""
    return date.today().isoformat()


def day_key(value: DayLike) -> str:
    """
    Normalize a date, datetime or date string to a ``YYYY-MM-DD`` key.

    Datetime strings keep their calendar-day prefix as written; no timezone
    conversion is applied, so ``2025-05-30T23:30:00Z`` stays on the 30th.

    Raises:
        ValueError: If the value is not a recognizable calendar day
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        raise ValueError(f"Not a calendar day: {value!r}")

    prefix = value.strip()[:DAY_FORMAT_LENGTH]
    # Round-trip through date to reject things like 2025-02-30
    return date.fromisoformat(prefix).isoformat()


def try_day_key(value: DayLike) -> Optional[str]:
    """Like :func:`day_key` but returns None instead of raising."""
    try:
        return day_key(value)
    except (TypeError, ValueError):
        return None


def parse_day(key: str) -> date:
    """Parse a ``YYYY-MM-DD`` key into a date."""
    return date.fromisoformat(key)


def shift_day(key: str, days: int) -> str:
    """Move a day key forward (positive) or backward (negative)."""
    return (parse_day(key) + timedelta(days=days)).isoformat()


def iter_days(start: str, end: str) -> Iterator[str]:
    """Yield every day key in ``[start, end]`` inclusive, oldest first."""
    current = parse_day(start)
    last = parse_day(end)
    while current <= last:
        yield current.isoformat()
        current += timedelta(days=1)


def day_of_week(key: str) -> int:
    """
    Get day of week where Sunday=0, Saturday=6.

    Args:
        key: Day key

    Returns:
        Day of week (0-6)
    """
    # Python weekday: Monday=0, Sunday=6
    return (parse_day(key).weekday() + 1) % 7


def week_bounds(key: str) -> tuple[str, str]:
    """
    Get the Sunday-Saturday week containing a day.

    Returns:
        Tuple of (week_start, week_end) day keys
    """
    start = shift_day(key, -day_of_week(key))
    return start, shift_day(start, 6)


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """First and last day keys of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()
