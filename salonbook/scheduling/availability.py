"""
Availability

Answers "which start times can this professional take for this service on
this local day", composing the working window, existing bookings and the
salon's lead-time policy.
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..models import Professional, Service, WorkingWindow
from .errors import InvalidInput, NotFound, StoreUnavailable
from .overlap import find_overlapping
from .slots import slots_for_window
from .tenancy import TenantContext
from .timeutils import local_day_bounds, minutes_since, utc_now, weekday_index


def load_service(tenant: TenantContext, service_id: int) -> Service:
    service = Service.query.filter_by(
        service_id=service_id, salon_id=tenant.salon_id, is_active=True
    ).first()
    if service is None:
        raise NotFound("service not found")
    return service


def load_professional(tenant: TenantContext, professional_id: int) -> Professional:
    professional = Professional.query.filter_by(
        professional_id=professional_id, salon_id=tenant.salon_id, is_active=True
    ).first()
    if professional is None:
        raise NotFound("professional not found")
    return professional


def require_eligible(service: Service, professional: Professional) -> None:
    eligible = service.professionals.filter(
        Professional.professional_id == professional.professional_id
    ).first()
    if eligible is None:
        raise InvalidInput("professional does not perform this service")


def get_working_window(professional_id: int, day_local: date) -> Optional[WorkingWindow]:
    return WorkingWindow.query.filter_by(
        professional_id=professional_id, day_of_week=weekday_index(day_local)
    ).first()


def busy_minutes(
    professional_id: int, day_local: date, tz_offset_minutes: int
) -> List[Tuple[int, int]]:
    """Active bookings of the day as minute offsets from local midnight."""
    day_start, day_end = local_day_bounds(day_local, tz_offset_minutes)
    return [
        (minutes_since(day_start, appt.starts_at), minutes_since(day_start, appt.ends_at))
        for appt in find_overlapping(professional_id, day_start, day_end)
    ]


def available_slots(
    tenant: TenantContext,
    professional_id: int,
    service_id: int,
    day_local: date,
    tz_offset_minutes: int,
    now_utc: Optional[datetime] = None,
) -> List[time]:
    """
    Bookable start times, ascending.

    The result is only valid at the moment it is computed; committing a
    booking re-checks the slot against the store.
    """
    now_utc = now_utc or utc_now()

    try:
        service = load_service(tenant, service_id)
        professional = load_professional(tenant, professional_id)
        require_eligible(service, professional)

        window = get_working_window(professional_id, day_local)
        if window is None:
            return []

        busy = busy_minutes(professional_id, day_local, tz_offset_minutes)
    except SQLAlchemyError as exc:
        raise StoreUnavailable("could not load availability") from exc

    slots = slots_for_window(
        window, service.duration_minutes, step=tenant.slot_step_minutes, busy=busy
    )
    return tenant.lead_time.filter_slots(slots, day_local, now_utc, tz_offset_minutes)
