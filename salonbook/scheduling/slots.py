"""
Slot Generation

Generates the bookable start times of one professional on one day,
considering:
- Working hours
- Lunch break
- Existing bookings
"""

from datetime import time
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidInput
from .timeutils import minutes_to_time, overlaps, to_minutes

DEFAULT_STEP_MINUTES = 30


def generate_slots(
    work_start: int,
    work_end: int,
    service_duration: int,
    step: int = DEFAULT_STEP_MINUTES,
    break_start: Optional[int] = None,
    break_end: Optional[int] = None,
    busy: Iterable[Tuple[int, int]] = (),
) -> List[int]:
    """
    Candidate start times, in minutes of day.

    Args:
        work_start: opening minute of day
        work_end: closing minute of day
        service_duration: minutes the service takes
        step: distance between consecutive candidates
        break_start, break_end: lunch break; ignored unless both are set
        busy: (start, end) minute intervals already taken that day. Values
            outside [0, 1440) are allowed for bookings crossing midnight.

    Returns:
        list[int]: accepted start minutes, ascending

    Algorithm:
        1. start = work_start, work_start + step, ... while the service
           still ends by work_end
        2. Drop candidates overlapping the break
        3. Drop candidates overlapping any busy interval
    """
    if service_duration <= 0:
        raise InvalidInput("service duration must be positive")
    if step <= 0:
        raise InvalidInput("slot step must be positive")

    busy_ranges = list(busy)
    has_break = break_start is not None and break_end is not None

    slots = []
    start = work_start
    while start + service_duration <= work_end:
        end = start + service_duration

        if has_break and overlaps(start, end, break_start, break_end):
            start += step
            continue

        if any(overlaps(start, end, b_start, b_end) for b_start, b_end in busy_ranges):
            start += step
            continue

        slots.append(start)
        start += step

    return slots


def slots_for_window(
    window,
    service_duration: int,
    step: int = DEFAULT_STEP_MINUTES,
    busy: Sequence[Tuple[int, int]] = (),
) -> List[time]:
    """Run :func:`generate_slots` over a ``WorkingWindow`` row."""
    if window is None:
        return []

    minutes = generate_slots(
        to_minutes(window.start_time),
        to_minutes(window.end_time),
        service_duration,
        step=step,
        break_start=to_minutes(window.break_start) if window.break_start is not None else None,
        break_end=to_minutes(window.break_end) if window.break_end is not None else None,
        busy=busy,
    )
    return [minutes_to_time(m) for m in minutes]
