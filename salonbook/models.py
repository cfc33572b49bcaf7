"""Database models for the SalonBook backend."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DDL, event, text

from .extensions import db


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# Which professionals perform which service
service_professionals = db.Table(
    "service_professionals",
    db.Column("service_id", db.Integer, db.ForeignKey("services.service_id"), primary_key=True),
    db.Column(
        "professional_id",
        db.Integer,
        db.ForeignKey("professionals.professional_id"),
        primary_key=True,
    ),
)


class Salon(db.Model):
    """A tenant. Portal requests resolve their salon through ``portal_token``."""

    __tablename__ = "salons"

    salon_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    portal_token = db.Column(db.String(64), unique=True, nullable=False)
    lead_time_mode = db.Column(
        db.Enum(
            "hours",
            "next_day",
            name="lead_time_mode",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="hours",
    )
    lead_time_hours = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.salon_id,
            "name": self.name,
            "lead_time_mode": self.lead_time_mode,
            "lead_time_hours": self.lead_time_hours,
        }


class Professional(db.Model):
    __tablename__ = "professionals"

    professional_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    # Bumped by every booking commit for this professional
    agenda_version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    salon = db.relationship("Salon")

    def to_dict_basic(self) -> dict[str, object]:
        return {"id": self.professional_id, "name": self.name}


class WorkingWindow(db.Model):
    """Weekly working hours of a professional, one row per weekday."""

    __tablename__ = "schedules"
    __table_args__ = (
        db.UniqueConstraint("professional_id", "day_of_week", name="uq_schedule_professional_day"),
    )

    schedule_id = db.Column(db.Integer, primary_key=True)
    professional_id = db.Column(
        db.Integer, db.ForeignKey("professionals.professional_id"), nullable=False
    )
    day_of_week = db.Column(db.Integer, nullable=False)  # 0=Sunday, 1=Monday, etc.
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    break_start = db.Column(db.Time, nullable=True)
    break_end = db.Column(db.Time, nullable=True)

    professional = db.relationship("Professional", backref="schedules")

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    def validate(self) -> list[str]:
        """Return the invariant violations of this window (empty when valid)."""
        errors = []
        if self.day_of_week is None or not 0 <= self.day_of_week <= 6:
            errors.append("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        if self.start_time >= self.end_time:
            errors.append("start_time must be before end_time")
        if (self.break_start is None) != (self.break_end is None):
            errors.append("break_start and break_end must be set together")
        elif self.has_break:
            if self.break_start >= self.break_end:
                errors.append("break_start must be before break_end")
            if self.break_start < self.start_time or self.break_end > self.end_time:
                errors.append("break must lie within working hours")
        return errors

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.schedule_id,
            "professional_id": self.professional_id,
            "day_of_week": self.day_of_week,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "break_start": self.break_start.strftime("%H:%M") if self.break_start else None,
            "break_end": self.break_end.strftime("%H:%M") if self.break_end else None,
        }


class Service(db.Model):
    """Services offered by a salon."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    salon = db.relationship("Salon")
    professionals = db.relationship(
        "Professional",
        secondary=service_professionals,
        backref="services",
        lazy="dynamic",
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "duration_minutes": self.duration_minutes,
            "professionals": [
                p.to_dict_basic()
                for p in self.professionals.filter_by(is_active=True).order_by(Professional.name)
            ],
        }


class Client(db.Model):
    __tablename__ = "clients"

    client_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    salon = db.relationship("Salon")


class Appointment(db.Model):
    """Booking header. ``starts_at`` and ``ends_at`` are naive UTC."""

    __tablename__ = "appointments"
    __table_args__ = (
        db.Index("ix_appointments_professional_starts", "professional_id", "starts_at"),
    )

    appointment_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.client_id"), nullable=False)
    professional_id = db.Column(
        db.Integer, db.ForeignKey("professionals.professional_id"), nullable=False
    )
    starts_at = db.Column(db.DateTime, nullable=False)
    ends_at = db.Column(db.DateTime, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(
        db.Enum(
            "active",
            "cancelled",
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="active",
    )
    notes = db.Column(db.Text)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    salon = db.relationship("Salon")
    client = db.relationship("Client")
    professional = db.relationship("Professional")
    items = db.relationship(
        "AppointmentItem",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentItem.item_id",
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "salon_id": self.salon_id,
            "client_id": self.client_id,
            "professional": self.professional.to_dict_basic() if self.professional else None,
            "starts_at": self.starts_at.isoformat() + "Z" if self.starts_at else None,
            "ends_at": self.ends_at.isoformat() + "Z" if self.ends_at else None,
            "duration_minutes": self.duration_minutes,
            "total_price_cents": self.total_price_cents,
            "status": self.status,
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
        }


class AppointmentItem(db.Model):
    """Service line item of a booking."""

    __tablename__ = "appointment_items"

    item_id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(
        db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=False
    )
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    appointment = db.relationship("Appointment", back_populates="items")
    service = db.relationship("Service")

    def to_dict(self) -> dict[str, object]:
        return {
            "service_id": self.service_id,
            "service_name": self.service.name if self.service else None,
            "duration_minutes": self.duration_minutes,
            "price_cents": self.price_cents,
        }


# On PostgreSQL the store itself rejects overlapping active bookings of one
# professional, so two racing commits cannot both land.
NO_OVERLAP_CONSTRAINT = "appointments_no_overlap_per_professional"

event.listen(
    Appointment.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE appointments ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist ("
        "professional_id WITH =, "
        "tsrange(starts_at, ends_at, '[)') WITH &&"
        ") WHERE (status = 'active')"
    ).execute_if(dialect="postgresql"),
)


def no_overlap_constraint_installed(connection) -> bool:
    """Tell whether the overlap exclusion constraint exists on this database."""
    if connection.dialect.name != "postgresql":
        return False
    found = connection.execute(
        text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
        {"name": NO_OVERLAP_CONSTRAINT},
    ).first()
    return found is not None
