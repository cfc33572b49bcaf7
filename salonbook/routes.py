"""HTTP routes for the SalonBook client portal."""
from __future__ import annotations

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import Service
from .scheduling import (BookingError, InvalidInput, available_slots, cancel_booking,
                         create_booking, get_booking, list_bookings, reschedule_booking,
                         resolve_tenant)
from .scheduling.timeutils import format_hhmm, parse_day, parse_hhmm, parse_tz_offset

bp = Blueprint("api", __name__)


def register_routes(app: Flask) -> None:
    app.register_blueprint(bp)


@bp.errorhandler(BookingError)
def handle_booking_error(exc: BookingError) -> tuple[Response, int]:
    if exc.status_code >= 500:
        current_app.logger.exception("Scheduling request failed", exc_info=exc)
    else:
        current_app.logger.warning(
            "Rejected %s %s: %s", request.method, request.path, exc.message
        )
    return jsonify(exc.to_dict()), exc.status_code


def _int_field(source, field: str, required: bool = True) -> int | None:
    value = source.get(field)
    if value is None or value == "":
        if required:
            raise InvalidInput(f"{field} is required")
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidInput(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{field} must be an integer") from exc


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidInput("request body must be a JSON object")
    return payload


def _tenant_for(source, with_client: bool = False):
    client_id = _int_field(source, "client_id") if with_client else None
    return resolve_tenant(
        source.get("token"),
        client_id=client_id,
        slot_step_minutes=current_app.config["SLOT_STEP_MINUTES"],
    )


def _slot_request(payload: dict, with_time: bool = False) -> dict[str, object]:
    """Validate the fields shared by the slot and booking endpoints."""
    professional_id = _int_field(payload, "professional_id")
    service_id = _int_field(payload, "service_id")
    if not payload.get("day"):
        raise InvalidInput("day is required")
    if with_time and not payload.get("time"):
        raise InvalidInput("time is required")

    fields = {
        "professional_id": professional_id,
        "service_id": service_id,
        "day_local": parse_day(payload.get("day")),
        "tz_offset_minutes": parse_tz_offset(payload.get("tz_offset_minutes")),
    }
    if with_time:
        fields["time_local"] = parse_hhmm(payload.get("time"))
    return fields


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


@bp.get("/portal/services")
def list_portal_services() -> tuple[dict[str, object], int]:
    """List the salon's active services with the professionals performing them.
    ---
    tags:
      - Portal
    parameters:
      - name: token
        in: query
        type: string
        required: true
    responses:
      200:
        description: Services ordered by name
      400:
        description: Missing or unknown portal token
      500:
        description: Database error
    """
    tenant = _tenant_for(request.args)
    try:
        services = (
            Service.query.filter_by(salon_id=tenant.salon_id, is_active=True)
            .order_by(Service.name)
            .all()
        )
        return jsonify({"ok": True, "services": [s.to_dict() for s in services]}), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list services", exc_info=exc)
        return jsonify({"ok": False, "error": "database_error"}), 500


@bp.post("/portal/available-slots")
def query_available_slots() -> tuple[dict[str, object], int]:
    """Return the bookable start times of a professional on a local day.
    ---
    tags:
      - Portal
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            token:
              type: string
            professional_id:
              type: integer
            service_id:
              type: integer
            day:
              type: string
              example: "2026-03-02"
            tz_offset_minutes:
              type: integer
              example: 180
          required:
            - token
            - professional_id
            - service_id
            - day
    responses:
      200:
        description: Slots as "HH:MM", ascending. An empty list means no availability.
      400:
        description: Invalid payload or professional does not perform the service
      404:
        description: Service or professional not found
      500:
        description: Database error
    """
    payload = _json_payload()
    tenant = _tenant_for(payload)
    fields = _slot_request(payload)

    slots = available_slots(tenant, **fields)
    return jsonify({"ok": True, "slots": [format_hhmm(s) for s in slots]}), 200


@bp.post("/portal/bookings")
def create_portal_booking() -> tuple[dict[str, object], int]:
    """Book a slot.
    ---
    tags:
      - Portal
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            token:
              type: string
            client_id:
              type: integer
            professional_id:
              type: integer
            service_id:
              type: integer
            day:
              type: string
            time:
              type: string
              example: "14:30"
            tz_offset_minutes:
              type: integer
            notes:
              type: string
    responses:
      201:
        description: Booking created
      400:
        description: Invalid payload
      404:
        description: Service or professional not found
      409:
        description: Slot no longer available
      500:
        description: Database error
    """
    payload = _json_payload()
    tenant = _tenant_for(payload, with_client=True)
    fields = _slot_request(payload, with_time=True)
    notes = (payload.get("notes") or "").strip() or None

    appointment = create_booking(tenant, notes=notes, **fields)
    return jsonify({"ok": True, "booking_id": appointment.appointment_id}), 201


@bp.put("/portal/bookings/<int:booking_id>")
def update_portal_booking(booking_id: int) -> tuple[dict[str, object], int]:
    """Reschedule an active booking.
    ---
    tags:
      - Portal
    parameters:
      - in: path
        name: booking_id
        required: true
        schema:
          type: integer
    responses:
      200:
        description: Booking updated
      400:
        description: Invalid payload
      404:
        description: Booking, service or professional not found
      409:
        description: Slot no longer available, or booking already cancelled
      500:
        description: Database error
    """
    payload = _json_payload()
    tenant = _tenant_for(payload, with_client=True)
    fields = _slot_request(payload, with_time=True)

    appointment = reschedule_booking(tenant, booking_id, **fields)
    return jsonify({"ok": True, "booking_id": appointment.appointment_id}), 200


@bp.post("/portal/bookings/<int:booking_id>/cancel")
def cancel_portal_booking(booking_id: int) -> tuple[dict[str, object], int]:
    """Cancel a booking. Repeating the call is harmless.
    ---
    tags:
      - Portal
    responses:
      200:
        description: Booking cancelled
      404:
        description: Booking not found
    """
    payload = _json_payload()
    tenant = _tenant_for(payload, with_client=True)

    appointment = cancel_booking(tenant, booking_id)
    return (
        jsonify({
            "ok": True,
            "booking_id": appointment.appointment_id,
            "status": appointment.status,
        }),
        200,
    )


@bp.get("/portal/bookings")
def list_portal_bookings() -> tuple[dict[str, object], int]:
    """List the client's bookings, newest first.
    ---
    tags:
      - Portal
    parameters:
      - name: token
        in: query
        type: string
        required: true
      - name: client_id
        in: query
        type: integer
        required: true
    """
    tenant = _tenant_for(request.args, with_client=True)
    bookings = list_bookings(tenant, limit=current_app.config["BOOKINGS_LIST_LIMIT"])
    return jsonify({"ok": True, "bookings": [b.to_dict() for b in bookings]}), 200


@bp.get("/portal/bookings/<int:booking_id>")
def get_portal_booking(booking_id: int) -> tuple[dict[str, object], int]:
    """Return one of the client's bookings.
    ---
    tags:
      - Portal
    responses:
      200:
        description: Booking details
      404:
        description: Booking not found
    """
    tenant = _tenant_for(request.args, with_client=True)
    appointment = get_booking(tenant, booking_id)
    return jsonify({"ok": True, "booking": appointment.to_dict()}), 200
