"""pytest configuration: app, client and a seeded salon."""
from __future__ import annotations

import sys
from datetime import date, time
from pathlib import Path
from types import SimpleNamespace

import pytest

# Ensure the project root is available on sys.path so tests can import the app package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from salonbook import create_app  # noqa: E402
from salonbook.extensions import db  # noqa: E402
from salonbook.models import (Client, Professional, Salon, Service,  # noqa: E402
                              WorkingWindow)

TOKEN = "test-portal-token"

# A Monday, far enough ahead that lead-time rules never hide its slots
FUTURE_DAY = date(2030, 3, 4)


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def salon_data(app):
    """
    One salon with:
    - Ana: works every day 09:00-18:00, lunch 12:00-13:00
    - Bruno: works every day 09:00-18:00, no lunch
    - Carla: has no schedule at all
    Services: cut (60 min, Ana and Bruno), color (120 min, Ana only).
    """
    with app.app_context():
        salon = Salon(name="Test Salon", portal_token=TOKEN, lead_time_mode="hours", lead_time_hours=0)
        other_salon = Salon(name="Other Salon", portal_token="other-token")
        db.session.add_all([salon, other_salon])
        db.session.flush()

        ana = Professional(salon_id=salon.salon_id, name="Ana")
        bruno = Professional(salon_id=salon.salon_id, name="Bruno")
        carla = Professional(salon_id=salon.salon_id, name="Carla")
        db.session.add_all([ana, bruno, carla])
        db.session.flush()

        for day in range(7):
            db.session.add(WorkingWindow(
                professional_id=ana.professional_id,
                day_of_week=day,
                start_time=time(9, 0),
                end_time=time(18, 0),
                break_start=time(12, 0),
                break_end=time(13, 0),
            ))
            db.session.add(WorkingWindow(
                professional_id=bruno.professional_id,
                day_of_week=day,
                start_time=time(9, 0),
                end_time=time(18, 0),
            ))

        cut = Service(salon_id=salon.salon_id, name="Cut", price_cents=5000, duration_minutes=60)
        color = Service(salon_id=salon.salon_id, name="Color", price_cents=12000, duration_minutes=120)
        cut.professionals.append(ana)
        cut.professionals.append(bruno)
        cut.professionals.append(carla)
        color.professionals.append(ana)
        db.session.add_all([cut, color])

        customer = Client(salon_id=salon.salon_id, name="Charlie Client", email="charlie@example.com")
        stranger = Client(salon_id=other_salon.salon_id, name="Sam Stranger")
        db.session.add_all([customer, stranger])
        db.session.commit()

        return SimpleNamespace(
            token=TOKEN,
            salon_id=salon.salon_id,
            other_salon_id=other_salon.salon_id,
            client_id=customer.client_id,
            stranger_id=stranger.client_id,
            ana_id=ana.professional_id,
            bruno_id=bruno.professional_id,
            carla_id=carla.professional_id,
            cut_id=cut.service_id,
            color_id=color.service_id,
        )
