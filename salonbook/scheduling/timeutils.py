"""
Time arithmetic shared by slot generation and booking.

Timezone offsets follow the browser convention (``Date.getTimezoneOffset``):
the number of minutes local wall-clock time lags UTC. UTC-3 is therefore
``180`` and UTC+1 is ``-60``. Adding the offset to local wall-clock fields
read as UTC gives the true UTC instant.

All instants handled here are naive datetimes in UTC.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union

from .errors import InvalidInput

MINUTES_PER_DAY = 24 * 60

# Real-world offsets sit between UTC-12 and UTC+14
MAX_TZ_OFFSET_MINUTES = 14 * 60

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::00)?$")


def to_minutes(value: time) -> int:
    """Minute of day of ``value``, in ``[0, 1440)``."""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minute of day out of range: {minutes}")
    return time(minutes // 60, minutes % 60)


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def parse_day(value: Optional[str]) -> date:
    """Parse a ``YYYY-MM-DD`` calendar day."""
    if not isinstance(value, str) or not _DAY_RE.match(value):
        raise InvalidInput("day must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInput("day must be in YYYY-MM-DD format") from exc


def parse_hhmm(value: Optional[str]) -> time:
    """Parse an ``HH:MM`` time of day."""
    match = _HHMM_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise InvalidInput("time must be in HH:MM format")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidInput("time must be in HH:MM format")
    return time(hours, minutes)


def parse_tz_offset(value: Union[int, str, None]) -> int:
    """Validate a client supplied offset. A missing offset means UTC."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise InvalidInput("tz_offset_minutes must be an integer")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as exc:
            raise InvalidInput("tz_offset_minutes must be an integer") from exc
    if not isinstance(value, int):
        raise InvalidInput("tz_offset_minutes must be an integer")
    if abs(value) > MAX_TZ_OFFSET_MINUTES:
        raise InvalidInput("tz_offset_minutes is out of range")
    return value


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open overlap test: intervals that only touch do not overlap."""
    return a_start < b_end and b_start < a_end


def to_naive_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_to_utc(day_local: date, time_local: time, tz_offset_minutes: int) -> datetime:
    return datetime.combine(day_local, time_local) + timedelta(minutes=tz_offset_minutes)


def utc_to_local(instant: datetime, tz_offset_minutes: int) -> Tuple[date, time]:
    local = to_naive_utc(instant) - timedelta(minutes=tz_offset_minutes)
    return local.date(), local.time()


def local_day_bounds(day_local: date, tz_offset_minutes: int) -> Tuple[datetime, datetime]:
    """UTC window ``[start, end)`` covering the 24 hours of a local day."""
    start = local_to_utc(day_local, time.min, tz_offset_minutes)
    return start, start + timedelta(days=1)


def minutes_since(origin: datetime, instant: datetime) -> int:
    """Whole minutes from ``origin`` to ``instant`` (negative when earlier)."""
    return int((to_naive_utc(instant) - origin).total_seconds() // 60)


def weekday_index(day: date) -> int:
    """Weekday with 0=Sunday, as stored in ``schedules.day_of_week``."""
    return (day.weekday() + 1) % 7
