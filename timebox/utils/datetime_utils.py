"""
Local wall-clock datetime utilities.

The engine schedules within the user's local day, so all datetimes handled
here are naive local times.
"""

from datetime import date, datetime, time, timedelta
from typing import Union

DayLike = Union[date, datetime]


def now_local() -> datetime:
    """
    Get the current local wall-clock time.

    Microseconds are dropped so stored values compare cleanly after a
    round trip through the database.
    """
    return datetime.now().replace(microsecond=0)


def as_date(day: DayLike) -> date:
    """Calendar date of a date or datetime."""
    return day.date() if isinstance(day, datetime) else day


def parse_hhmm(value: str) -> time:
    """
    Parse an `HH:MM` string.

    Raises:
        ValueError: If the string is not a valid 24h clock time
    """
    parts = value.split(":")
    if len(parts) != 2:
        raise ValueError(f"expected HH:MM, got {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"expected HH:MM, got {value!r}")
    return time(hours, minutes)


def to_day_time(day: DayLike, hhmm: str) -> datetime:
    """
    Combine a calendar day with an `HH:MM` clock time.

    Example:
        >>> to_day_time(date(2025, 3, 10), "09:30")
        datetime(2025, 3, 10, 9, 30)
    """
    return datetime.combine(as_date(day), parse_hhmm(hhmm))


def day_bounds(day: DayLike) -> tuple[datetime, datetime]:
    """First and last representable instant of a calendar day."""
    start = datetime.combine(as_date(day), time.min)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def same_day(a: DayLike, b: DayLike) -> bool:
    return as_date(a) == as_date(b)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded to the nearest minute."""
    return round((end - start).total_seconds() / 60)


def add_minutes(t: datetime, minutes: int) -> datetime:
    return t + timedelta(minutes=minutes)


def to_naive_local(value: datetime) -> datetime:
    """
    Drop the offset of an aware datetime after converting it to local time.

    Naive values are returned unchanged.

    Example:
        >>> to_naive_local(datetime(2025, 3, 10, 9, 0))
        datetime(2025, 3, 10, 9, 0)
    """
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
