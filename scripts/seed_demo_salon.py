#!/usr/bin/env python3
"""Seed the database with a demo salon, its professionals, schedules and services."""
import secrets
import sys
from datetime import time
from pathlib import Path

# Add the parent directory to the path so we can import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from salonbook import create_app
from salonbook.extensions import db
from salonbook.models import Client, Professional, Salon, Service, WorkingWindow

DEMO_SALON_NAME = "Demo Barbershop"


def seed_demo_salon():
    """Add a demo salon unless one already exists."""
    app = create_app()

    with app.app_context():
        db.create_all()

        existing = Salon.query.filter_by(name=DEMO_SALON_NAME).first()
        if existing:
            print(f"⏭️  {DEMO_SALON_NAME} already exists (token: {existing.portal_token}). Skipping...")
            return

        salon = Salon(
            name=DEMO_SALON_NAME,
            portal_token=secrets.token_urlsafe(16),
            lead_time_mode="hours",
            lead_time_hours=2,
        )
        db.session.add(salon)
        db.session.flush()

        ana = Professional(salon_id=salon.salon_id, name="Ana")
        bruno = Professional(salon_id=salon.salon_id, name="Bruno")
        db.session.add_all([ana, bruno])
        db.session.flush()

        # Monday to Saturday, lunch from 12:00 to 13:00 on weekdays
        for professional in (ana, bruno):
            for day in range(1, 7):
                window = WorkingWindow(
                    professional_id=professional.professional_id,
                    day_of_week=day,
                    start_time=time(9, 0),
                    end_time=time(18, 0) if day < 6 else time(14, 0),
                    break_start=time(12, 0) if day < 6 else None,
                    break_end=time(13, 0) if day < 6 else None,
                )
                problems = window.validate()
                if problems:
                    raise ValueError(f"Invalid schedule for {professional.name}: {problems}")
                db.session.add(window)

        sample_services = [
            {"name": "Haircut", "price_cents": 4000, "duration_minutes": 30, "staff": [ana, bruno]},
            {"name": "Beard Trim", "price_cents": 2500, "duration_minutes": 30, "staff": [bruno]},
            {"name": "Haircut + Beard", "price_cents": 6000, "duration_minutes": 60, "staff": [bruno]},
            {"name": "Coloring", "price_cents": 12000, "duration_minutes": 120, "staff": [ana]},
        ]
        for service_data in sample_services:
            service = Service(
                salon_id=salon.salon_id,
                name=service_data["name"],
                price_cents=service_data["price_cents"],
                duration_minutes=service_data["duration_minutes"],
            )
            for professional in service_data["staff"]:
                service.professionals.append(professional)
            db.session.add(service)

        db.session.add(Client(salon_id=salon.salon_id, name="Demo Client", email="client@example.com"))
        db.session.commit()

        print(f"✅ Seeded {DEMO_SALON_NAME} (portal token: {salon.portal_token})")


if __name__ == "__main__":
    seed_demo_salon()
