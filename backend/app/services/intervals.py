from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from app.services.errors import InvalidWindow

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^([0-1]\d|2[0-3]):[0-5]\d$")


def overlaps(start_a: Any, end_a: Any, start_b: Any, end_b: Any) -> bool:
    """Half-open overlap test; touching endpoints do not conflict."""
    return start_a < end_b and start_b < end_a


def is_valid_time_string(value: str | None) -> bool:
    return bool(value) and _HHMM.match(value) is not None


def to_minutes(value: str) -> int:
    if not isinstance(value, str) or not _HHMM.match(value):
        raise InvalidWindow(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def to_time_string(minutes: int) -> str:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise InvalidWindow(f"Minute offset {minutes} is outside a day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_index(day: date) -> int:
    """Weekday with Sunday as 0, the convention schedules are stored in."""
    return (day.weekday() + 1) % 7


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    # Naive values are civil time in the clinic zone.
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def minute_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def at_minute(day: date, minutes: int, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=tz)


def validate_period(starts_at: datetime, ends_at: datetime) -> None:
    if ends_at <= starts_at:
        raise InvalidWindow("End must be after start")


def ensure_whole_minute(value: datetime) -> datetime:
    if value.second or value.microsecond:
        raise InvalidWindow("Appointment start must fall on a whole minute")
    return value
