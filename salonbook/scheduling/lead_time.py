"""Advance-notice rules deciding how soon a slot may be booked."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Sequence

from .timeutils import local_to_utc, to_minutes, to_naive_utc, utc_to_local

HOURS = "hours"
NEXT_DAY = "next_day"
MODES = (HOURS, NEXT_DAY)


@dataclass(frozen=True)
class LeadTimePolicy:
    """
    ``hours``: a slot must start at least ``hours`` after now.
    ``next_day``: nothing can be booked on the client's current local day.
    """

    mode: str = HOURS
    hours: int = 0

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"unknown lead time mode: {self.mode!r}")
        if self.hours < 0:
            raise ValueError("lead time hours must not be negative")

    @classmethod
    def for_salon(cls, salon) -> "LeadTimePolicy":
        return cls(mode=salon.lead_time_mode or HOURS, hours=salon.lead_time_hours or 0)

    def min_start_utc(self, now_utc: datetime, tz_offset_minutes: int) -> datetime:
        now_utc = to_naive_utc(now_utc)
        if self.mode == NEXT_DAY:
            today, _ = utc_to_local(now_utc, tz_offset_minutes)
            return local_to_utc(today + timedelta(days=1), time.min, tz_offset_minutes)
        return now_utc + timedelta(hours=self.hours)

    def allows(self, start_utc: datetime, now_utc: datetime, tz_offset_minutes: int) -> bool:
        return to_naive_utc(start_utc) >= self.min_start_utc(now_utc, tz_offset_minutes)

    def filter_slots(
        self,
        slots: Sequence[time],
        day_local: date,
        now_utc: datetime,
        tz_offset_minutes: int,
    ) -> List[time]:
        """Drop the slots of ``day_local`` that start before the minimum instant."""
        min_day, min_time = utc_to_local(
            self.min_start_utc(now_utc, tz_offset_minutes), tz_offset_minutes
        )
        # When hours of notice cross local midnight the cut-off lands on a later
        # day, and that day is trimmed too, matching what allows() rejects.
        if day_local > min_day:
            return list(slots)
        if day_local < min_day:
            return []

        earliest = to_minutes(min_time)
        if min_time.second or min_time.microsecond:
            earliest += 1
        return [slot for slot in slots if to_minutes(slot) >= earliest]
