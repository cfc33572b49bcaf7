"""Tests for committing, rescheduling and cancelling bookings."""
from __future__ import annotations

from datetime import datetime, time, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from salonbook.extensions import db
from salonbook.models import NO_OVERLAP_CONSTRAINT, Appointment, AppointmentItem, Professional, Salon
from salonbook.scheduling import (BookingConflict, InvalidInput, InvalidTransition, NotFound,
                                  StoreUnavailable, cancel_booking, create_booking, get_booking,
                                  list_bookings, reschedule_booking, resolve_tenant)

from conftest import FUTURE_DAY

NOW = datetime(2030, 3, 1, 12, 0)


def _tenant(data):
    return resolve_tenant(data.token, client_id=data.client_id)


def _create(data, professional_id=None, service_id=None, at=time(10, 0), offset=0, day=FUTURE_DAY):
    return create_booking(
        _tenant(data),
        professional_id or data.ana_id,
        service_id or data.cut_id,
        day,
        at,
        offset,
        now_utc=NOW,
    )


def test_create_booking_writes_header_and_item(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, offset=180)

        stored = db.session.get(Appointment, appointment.appointment_id)
        assert stored.status == "active"
        assert stored.starts_at == datetime(2030, 3, 4, 13, 0)
        assert stored.ends_at == datetime(2030, 3, 4, 14, 0)
        assert stored.duration_minutes == 60
        assert stored.total_price_cents == 5000
        assert len(stored.items) == 1
        assert stored.items[0].service_id == salon_data.cut_id
        assert stored.items[0].price_cents == 5000


def test_overlapping_booking_is_a_conflict(app, salon_data) -> None:
    with app.app_context():
        _create(salon_data, at=time(10, 0))

        with pytest.raises(BookingConflict) as excinfo:
            _create(salon_data, at=time(10, 30))

        assert excinfo.value.message == "slot no longer available"
        assert Appointment.query.count() == 1


def test_back_to_back_bookings_are_allowed(app, salon_data) -> None:
    with app.app_context():
        _create(salon_data, at=time(10, 0))
        _create(salon_data, at=time(11, 0))

        assert Appointment.query.filter_by(status="active").count() == 2


def test_conflict_is_checked_in_utc_across_offsets(app, salon_data) -> None:
    with app.app_context():
        # 10:00 in UTC-3 and 13:00 in UTC are the same instant
        _create(salon_data, at=time(10, 0), offset=180)

        with pytest.raises(BookingConflict):
            _create(salon_data, at=time(13, 0), offset=0)


def test_cancelled_booking_frees_the_slot(app, salon_data) -> None:
    with app.app_context():
        first = _create(salon_data, at=time(10, 0))
        cancel_booking(_tenant(salon_data), first.appointment_id)

        second = _create(salon_data, at=time(10, 0))

        assert second.appointment_id != first.appointment_id


def test_create_rejects_ineligible_professional(app, salon_data) -> None:
    with app.app_context():
        with pytest.raises(InvalidInput):
            _create(salon_data, professional_id=salon_data.bruno_id, service_id=salon_data.color_id)

        assert Appointment.query.count() == 0


def test_create_rejects_slot_outside_working_hours(app, salon_data) -> None:
    with app.app_context():
        with pytest.raises(InvalidInput):
            _create(salon_data, at=time(17, 30))
        with pytest.raises(InvalidInput):
            _create(salon_data, at=time(8, 30))
        with pytest.raises(InvalidInput):
            _create(salon_data, professional_id=salon_data.carla_id, at=time(10, 0))


def test_create_rejects_slot_overlapping_break(app, salon_data) -> None:
    with app.app_context():
        with pytest.raises(InvalidInput):
            _create(salon_data, at=time(11, 30))


def test_create_rejects_slot_inside_lead_time(app, salon_data) -> None:
    with app.app_context():
        salon = db.session.get(Salon, salon_data.salon_id)
        salon.lead_time_mode = "next_day"
        db.session.commit()

        with pytest.raises(InvalidInput):
            create_booking(
                _tenant(salon_data), salon_data.ana_id, salon_data.cut_id,
                FUTURE_DAY, time(15, 0), 0,
                now_utc=datetime(2030, 3, 4, 9, 0),
            )


def test_create_requires_client(app, salon_data) -> None:
    with app.app_context():
        with pytest.raises(InvalidInput):
            create_booking(
                resolve_tenant(salon_data.token), salon_data.ana_id, salon_data.cut_id,
                FUTURE_DAY, time(10, 0), 0, now_utc=NOW,
            )


def test_exclusion_constraint_violation_becomes_conflict(app, salon_data) -> None:
    violation = IntegrityError(
        "INSERT INTO appointments ...",
        {},
        Exception(f'conflicting key value violates exclusion constraint "{NO_OVERLAP_CONSTRAINT}"'),
    )
    with app.app_context():
        with patch.object(db.session, "flush", side_effect=violation):
            with pytest.raises(BookingConflict):
                _create(salon_data)

        assert Appointment.query.count() == 0


def test_failed_line_item_write_rolls_back_header(app, salon_data) -> None:
    with app.app_context():
        real_flush = db.session.flush
        flushed = []

        def header_then_failing_item(*args, **kwargs):
            # First flush inserts the header, the second one carries the line item
            if flushed:
                raise OperationalError("INSERT INTO appointment_items", {}, Exception("disk I/O error"))
            flushed.append(True)
            return real_flush(*args, **kwargs)

        with patch.object(db.session, "flush", side_effect=header_then_failing_item):
            with pytest.raises(StoreUnavailable):
                _create(salon_data)

        assert flushed == [True]

        assert Appointment.query.count() == 0
        assert AppointmentItem.query.count() == 0


def test_reschedule_moves_booking_and_line_item(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))

        moved = reschedule_booking(
            _tenant(salon_data), appointment.appointment_id,
            salon_data.ana_id, salon_data.color_id, FUTURE_DAY, time(14, 0), 0,
            now_utc=NOW,
        )

        assert moved.starts_at == datetime(2030, 3, 4, 14, 0)
        assert moved.ends_at == datetime(2030, 3, 4, 16, 0)
        assert moved.duration_minutes == 120
        assert moved.total_price_cents == 12000
        assert len(moved.items) == 1
        assert moved.items[0].service_id == salon_data.color_id


def test_reschedule_ignores_its_own_interval(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))

        moved = reschedule_booking(
            _tenant(salon_data), appointment.appointment_id,
            salon_data.ana_id, salon_data.cut_id, FUTURE_DAY, time(10, 30), 0,
            now_utc=NOW,
        )

        assert moved.starts_at == datetime(2030, 3, 4, 10, 30)


def test_reschedule_onto_another_booking_conflicts(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))
        _create(salon_data, at=time(14, 0))

        with pytest.raises(BookingConflict):
            reschedule_booking(
                _tenant(salon_data), appointment.appointment_id,
                salon_data.ana_id, salon_data.cut_id, FUTURE_DAY, time(14, 30), 0,
                now_utc=NOW,
            )

        unchanged = db.session.get(Appointment, appointment.appointment_id)
        assert unchanged.starts_at == datetime(2030, 3, 4, 10, 0)


def test_reschedule_to_another_professional(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))

        moved = reschedule_booking(
            _tenant(salon_data), appointment.appointment_id,
            salon_data.bruno_id, salon_data.cut_id, FUTURE_DAY, time(10, 0), 0,
            now_utc=NOW,
        )

        assert moved.professional_id == salon_data.bruno_id


def test_reschedule_recreates_missing_line_item(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))
        AppointmentItem.query.filter_by(appointment_id=appointment.appointment_id).delete()
        db.session.commit()

        moved = reschedule_booking(
            _tenant(salon_data), appointment.appointment_id,
            salon_data.ana_id, salon_data.cut_id, FUTURE_DAY, time(15, 0), 0,
            now_utc=NOW,
        )

        assert len(moved.items) == 1


def test_cancelled_booking_cannot_be_rescheduled(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))
        cancel_booking(_tenant(salon_data), appointment.appointment_id)

        with pytest.raises(InvalidTransition):
            reschedule_booking(
                _tenant(salon_data), appointment.appointment_id,
                salon_data.ana_id, salon_data.cut_id, FUTURE_DAY, time(15, 0), 0,
                now_utc=NOW,
            )


def test_cancel_is_idempotent(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))

        first = cancel_booking(_tenant(salon_data), appointment.appointment_id)
        cancelled_at = first.cancelled_at
        second = cancel_booking(_tenant(salon_data), appointment.appointment_id)

        assert first.status == "cancelled"
        assert second.status == "cancelled"
        assert second.cancelled_at == cancelled_at


def test_other_clients_cannot_touch_a_booking(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))
        other_tenant = resolve_tenant("other-token", client_id=salon_data.stranger_id)

        with pytest.raises(NotFound):
            cancel_booking(other_tenant, appointment.appointment_id)
        with pytest.raises(NotFound):
            get_booking(other_tenant, appointment.appointment_id)


def test_list_bookings_newest_first(app, salon_data) -> None:
    with app.app_context():
        _create(salon_data, at=time(10, 0))
        _create(salon_data, at=time(9, 0), day=FUTURE_DAY + timedelta(days=1))

        bookings = list_bookings(_tenant(salon_data))

        assert [b.starts_at for b in bookings] == [
            datetime(2030, 3, 5, 9, 0),
            datetime(2030, 3, 4, 10, 0),
        ]


def test_commits_bump_the_professional_agenda_version(app, salon_data) -> None:
    with app.app_context():
        appointment = _create(salon_data, at=time(10, 0))
        with pytest.raises(BookingConflict):
            _create(salon_data, at=time(10, 0))
        reschedule_booking(
            _tenant(salon_data), appointment.appointment_id,
            salon_data.ana_id, salon_data.cut_id, FUTURE_DAY, time(15, 0), 0,
            now_utc=NOW,
        )

        db.session.expire_all()
        # The rejected attempt rolled its bump back
        assert db.session.get(Professional, salon_data.ana_id).agenda_version == 2
        assert db.session.get(Professional, salon_data.bruno_id).agenda_version == 0
