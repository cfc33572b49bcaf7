"""
Overlap Detection

Looks up the active bookings of a professional that intersect a UTC
interval. Cancelled bookings never take part.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from ..models import Appointment


def find_overlapping(
    professional_id: int,
    start_utc: datetime,
    end_utc: datetime,
    exclude_appointment: Optional[int] = None,
) -> List[Appointment]:
    """
    Active appointments of ``professional_id`` overlapping ``[start_utc, end_utc)``.

    Args:
        professional_id: professional whose agenda is checked
        start_utc, end_utc: naive UTC bounds of the interval
        exclude_appointment: appointment id to ignore (for reschedules)
    """
    query = Appointment.query.filter(
        Appointment.professional_id == professional_id,
        Appointment.status == "active",
        # Half-open: an appointment ending at start_utc does not overlap
        Appointment.starts_at < end_utc,
        Appointment.ends_at > start_utc,
    )
    if exclude_appointment is not None:
        query = query.filter(Appointment.appointment_id != exclude_appointment)

    return query.order_by(Appointment.starts_at).all()
