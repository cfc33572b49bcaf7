"""Tests for POST /portal/bookings."""
from __future__ import annotations

from datetime import datetime

import pytest

from salonbook.models import Appointment


@pytest.fixture
def payload(salon_data):
    return {
        "token": salon_data.token,
        "client_id": salon_data.client_id,
        "professional_id": salon_data.ana_id,
        "service_id": salon_data.cut_id,
        "day": "2030-03-04",
        "time": "10:00",
        "tz_offset_minutes": 180,
        "notes": "  first visit ",
    }


def test_create_booking_success_201(app, client, payload) -> None:
    response = client.post("/portal/bookings", json=payload)
    data = response.get_json()

    assert response.status_code == 201
    assert data["ok"] is True

    with app.app_context():
        appointment = Appointment.query.get(data["booking_id"])
        assert appointment.starts_at == datetime(2030, 3, 4, 13, 0)
        assert appointment.notes == "first visit"
        assert appointment.status == "active"


def test_create_booking_same_slot_twice_409(client, payload) -> None:
    first = client.post("/portal/bookings", json=payload)
    second = client.post("/portal/bookings", json=payload)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.get_json() == {"ok": False, "error": "slot no longer available"}


def test_create_booking_then_slot_disappears(client, payload) -> None:
    client.post("/portal/bookings", json=payload)

    response = client.post("/portal/available-slots", json={
        key: payload[key] for key in ("token", "professional_id", "service_id", "day", "tz_offset_minutes")
    })

    assert "10:00" not in response.get_json()["slots"]
    assert "09:00" in response.get_json()["slots"]


@pytest.mark.parametrize("field", ["client_id", "time"])
def test_create_booking_missing_field_400(client, payload, field) -> None:
    del payload[field]

    response = client.post("/portal/bookings", json=payload)

    assert response.status_code == 400
    assert field in response.get_json()["error"]


def test_create_booking_invalid_time_400(client, payload) -> None:
    payload["time"] = "25:00"

    response = client.post("/portal/bookings", json=payload)

    assert response.status_code == 400
    assert response.get_json() == {"ok": False, "error": "time must be in HH:MM format"}


def test_create_booking_foreign_client_400(client, salon_data, payload) -> None:
    payload["client_id"] = salon_data.stranger_id

    response = client.post("/portal/bookings", json=payload)

    assert response.status_code == 400
    assert response.get_json()["error"] == "client is not registered at this salon"


def test_create_booking_outside_hours_400(client, payload) -> None:
    payload["time"] = "17:30"

    response = client.post("/portal/bookings", json=payload)

    assert response.status_code == 400
    assert response.get_json()["error"] == "slot is outside the professional's working hours"


def test_create_booking_professional_not_found_404(client, payload) -> None:
    payload["professional_id"] = 999

    response = client.post("/portal/bookings", json=payload)

    assert response.status_code == 404
    assert response.get_json() == {"ok": False, "error": "professional not found"}


def test_create_booking_fractional_id_400(client, payload) -> None:
    payload["professional_id"] = 1.5

    response = client.post("/portal/bookings", json=payload)

    assert response.status_code == 400
    assert response.get_json() == {"ok": False, "error": "professional_id must be an integer"}


def test_create_booking_whole_float_id_is_accepted_201(client, salon_data, payload) -> None:
    payload["professional_id"] = float(salon_data.ana_id)

    response = client.post("/portal/bookings", json=payload)

    assert response.status_code == 201


@pytest.mark.parametrize("body", [[1], "booking", 42])
def test_create_booking_body_not_an_object_400(client, body) -> None:
    response = client.post("/portal/bookings", json=body)

    assert response.status_code == 400
    assert response.get_json() == {"ok": False, "error": "request body must be a JSON object"}


def test_error_response_is_json(client) -> None:
    response = client.post("/portal/bookings", json=[1])

    assert response.mimetype == "application/json"
