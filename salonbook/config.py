"""Default configuration, overridable through the environment."""
from __future__ import annotations

import os


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///salonbook.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Comma separated list; "*" allows any origin
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    SLOT_STEP_MINUTES = int(os.environ.get("SLOT_STEP_MINUTES", 30))
    BOOKINGS_LIST_LIMIT = int(os.environ.get("BOOKINGS_LIST_LIMIT", 100))
