"""
Booking commits.

A booking moves ``active -> cancelled`` and never back. Creating or moving a
booking always re-reads the professional's active bookings inside the
writing transaction: the slot list a client picked from may be stale by the
time they confirm.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import NO_OVERLAP_CONSTRAINT, Appointment, AppointmentItem, Professional
from .availability import get_working_window, load_professional, load_service, require_eligible
from .errors import (BookingConflict, BookingError, InvalidInput, InvalidTransition,
                     NotFound, StoreUnavailable)
from .overlap import find_overlapping
from .tenancy import TenantContext
from .timeutils import local_to_utc, overlaps, to_minutes, utc_now


def _interval(
    day_local: date, time_local: time, tz_offset_minutes: int, duration_minutes: int
) -> Tuple[datetime, datetime]:
    start_utc = local_to_utc(day_local, time_local, tz_offset_minutes)
    return start_utc, start_utc + timedelta(minutes=duration_minutes)


def _validate_slot(
    tenant: TenantContext,
    professional_id: int,
    day_local: date,
    time_local: time,
    duration_minutes: int,
    start_utc: datetime,
    tz_offset_minutes: int,
    now_utc: datetime,
) -> None:
    if not tenant.lead_time.allows(start_utc, now_utc, tz_offset_minutes):
        raise InvalidInput("slot is inside the salon's advance-notice period")

    window = get_working_window(professional_id, day_local)
    start = to_minutes(time_local)
    end = start + duration_minutes
    if window is None or start < to_minutes(window.start_time) or end > to_minutes(window.end_time):
        raise InvalidInput("slot is outside the professional's working hours")
    if window.has_break and overlaps(
        start, end, to_minutes(window.break_start), to_minutes(window.break_end)
    ):
        raise InvalidInput("slot overlaps the professional's break")


def _lock_professional(professional_id: int) -> None:
    # Must be the first write of the transaction and run before the re-check.
    # The UPDATE takes a row lock on PostgreSQL and the database write lock on
    # SQLite, where pysqlite only opens a transaction at the first DML statement.
    Professional.query.filter_by(professional_id=professional_id).update(
        {Professional.agenda_version: Professional.agenda_version + 1},
        synchronize_session=False,
    )


def _ensure_free(
    professional_id: int,
    start_utc: datetime,
    end_utc: datetime,
    exclude_appointment: Optional[int] = None,
) -> None:
    clashes = find_overlapping(
        professional_id, start_utc, end_utc, exclude_appointment=exclude_appointment
    )
    if clashes:
        current_app.logger.warning(
            "Booking conflict for professional %s at %s (clashes with %s)",
            professional_id,
            start_utc.isoformat(),
            [appt.appointment_id for appt in clashes],
        )
        raise BookingConflict(details={"professional_id": professional_id})


def _conflict_from_integrity(exc: IntegrityError) -> BookingError:
    """Translate the exclusion constraint violation raised by concurrent commits."""
    if NO_OVERLAP_CONSTRAINT in str(getattr(exc, "orig", exc)):
        return BookingConflict()
    return StoreUnavailable("could not save booking")


def _load_booking(tenant: TenantContext, booking_id: int, for_update: bool = False) -> Appointment:
    query = Appointment.query.filter_by(appointment_id=booking_id, salon_id=tenant.salon_id)
    if tenant.client_id is not None:
        query = query.filter_by(client_id=tenant.client_id)
    if for_update:
        query = query.with_for_update()
    appointment = query.first()
    if appointment is None:
        raise NotFound("booking not found")
    return appointment


def create_booking(
    tenant: TenantContext,
    professional_id: int,
    service_id: int,
    day_local: date,
    time_local: time,
    tz_offset_minutes: int,
    now_utc: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> Appointment:
    """Book a slot for the tenant's client, or raise :class:`BookingConflict`."""
    client_id = tenant.require_client()
    now_utc = now_utc or utc_now()

    try:
        service = load_service(tenant, service_id)
        professional = load_professional(tenant, professional_id)
        require_eligible(service, professional)

        start_utc, end_utc = _interval(
            day_local, time_local, tz_offset_minutes, service.duration_minutes
        )
        _validate_slot(
            tenant, professional_id, day_local, time_local,
            service.duration_minutes, start_utc, tz_offset_minutes, now_utc,
        )

        _lock_professional(professional_id)
        _ensure_free(professional_id, start_utc, end_utc)

        appointment = Appointment(
            salon_id=tenant.salon_id,
            client_id=client_id,
            professional_id=professional_id,
            starts_at=start_utc,
            ends_at=end_utc,
            duration_minutes=service.duration_minutes,
            total_price_cents=service.price_cents,
            status="active",
            notes=notes,
        )
        db.session.add(appointment)
        db.session.flush()  # Flush to get the ID before adding the line item

        db.session.add(AppointmentItem(
            appointment_id=appointment.appointment_id,
            service_id=service.service_id,
            duration_minutes=service.duration_minutes,
            price_cents=service.price_cents,
        ))
        db.session.flush()
        db.session.commit()
    except BookingError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        raise _conflict_from_integrity(exc) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailable("could not save booking") from exc

    current_app.logger.info(
        "Booking %s created for professional %s at %s",
        appointment.appointment_id,
        professional_id,
        start_utc.isoformat(),
    )
    return appointment


def reschedule_booking(
    tenant: TenantContext,
    booking_id: int,
    professional_id: int,
    service_id: int,
    day_local: date,
    time_local: time,
    tz_offset_minutes: int,
    now_utc: Optional[datetime] = None,
) -> Appointment:
    """Move an active booking, possibly to another professional or service."""
    tenant.require_client()
    now_utc = now_utc or utc_now()

    try:
        appointment = _load_booking(tenant, booking_id, for_update=True)
        if appointment.status != "active":
            raise InvalidTransition("booking is already cancelled")

        service = load_service(tenant, service_id)
        professional = load_professional(tenant, professional_id)
        require_eligible(service, professional)

        start_utc, end_utc = _interval(
            day_local, time_local, tz_offset_minutes, service.duration_minutes
        )
        _validate_slot(
            tenant, professional_id, day_local, time_local,
            service.duration_minutes, start_utc, tz_offset_minutes, now_utc,
        )

        _lock_professional(professional_id)
        _ensure_free(professional_id, start_utc, end_utc, exclude_appointment=booking_id)

        appointment.professional_id = professional_id
        appointment.starts_at = start_utc
        appointment.ends_at = end_utc
        appointment.duration_minutes = service.duration_minutes
        appointment.total_price_cents = service.price_cents

        item = appointment.items[0] if appointment.items else None
        if item is None:
            item = AppointmentItem(appointment_id=appointment.appointment_id)
            appointment.items.append(item)
        item.service_id = service.service_id
        item.duration_minutes = service.duration_minutes
        item.price_cents = service.price_cents

        db.session.commit()
    except BookingError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        raise _conflict_from_integrity(exc) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailable("could not save booking") from exc

    current_app.logger.info(
        "Booking %s moved to professional %s at %s",
        booking_id,
        professional_id,
        start_utc.isoformat(),
    )
    return appointment


def cancel_booking(tenant: TenantContext, booking_id: int) -> Appointment:
    """Cancel a booking. Cancelling twice returns the cancelled booking unchanged."""
    try:
        appointment = _load_booking(tenant, booking_id, for_update=True)
        if appointment.status == "cancelled":
            db.session.rollback()
            return appointment

        appointment.status = "cancelled"
        appointment.cancelled_at = utc_now()
        db.session.commit()
    except BookingError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailable("could not cancel booking") from exc

    current_app.logger.info("Booking %s cancelled", booking_id)
    return appointment


def get_booking(tenant: TenantContext, booking_id: int) -> Appointment:
    try:
        return _load_booking(tenant, booking_id)
    except SQLAlchemyError as exc:
        raise StoreUnavailable("could not load booking") from exc


def list_bookings(tenant: TenantContext, limit: int = 100) -> List[Appointment]:
    """The client's bookings, newest first."""
    client_id = tenant.require_client()
    try:
        return (
            Appointment.query.filter_by(salon_id=tenant.salon_id, client_id=client_id)
            .order_by(Appointment.starts_at.desc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        raise StoreUnavailable("could not load bookings") from exc
