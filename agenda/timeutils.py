"""
Datetime helpers for consistent timezone handling.

Storage uses naive UTC; the scheduling core works with timezone-aware
datetimes; business hours are wall-clock times in the shop's timezone.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from agenda.core import Interval
from agenda.errors import ValidationError


def utc_now() -> datetime:
    """Current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    return utc_now().replace(tzinfo=None)


def get_zone(name: str) -> ZoneInfo:
    """
    Resolve an IANA zone name.

    Raises:
        ValidationError: If the zone is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone: {name}") from e


def to_utc(dt: datetime, tz: tzinfo) -> datetime:
    """Aware UTC datetime; naive input is read as wall-clock time in ``tz``."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(timezone.utc)


def to_storage(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Naive UTC for the database."""
    if dt.tzinfo is None:
        if tz is None:
            return dt
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(dt: datetime) -> datetime:
    """Aware UTC from a stored naive UTC value."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_datetime(day: date, wall_clock: time, tz: ZoneInfo) -> datetime:
    """Wall-clock time on ``day`` in ``tz``, returned as aware UTC."""
    return datetime.combine(day, wall_clock, tzinfo=tz).astimezone(timezone.utc)


def day_window(day: date, tz: ZoneInfo) -> Interval:
    """``[local midnight, next local midnight)`` as aware UTC instants."""
    return Interval(
        local_datetime(day, time.min, tz),
        local_datetime(day + timedelta(days=1), time.min, tz),
    )


def local_today(tz: ZoneInfo, now: Optional[datetime] = None) -> date:
    now = now or utc_now()
    return to_utc(now, timezone.utc).astimezone(tz).date()


def sunday_weekday(day: date) -> int:
    # Stored weekdays count from Sunday (0) to Saturday (6).
    return (day.weekday() + 1) % 7
