#!/usr/bin/env python3
"""Create the SalonBook tables and report how overlapping bookings are guarded."""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from salonbook import create_app
from salonbook.extensions import db
from salonbook.models import NO_OVERLAP_CONSTRAINT, no_overlap_constraint_installed


def init_database():
    app = create_app()
    with app.app_context():
        db.create_all()
        print(f"✅ Database tables initialized on {db.engine.url.render_as_string(hide_password=True)}")

        with db.engine.connect() as connection:
            if no_overlap_constraint_installed(connection):
                print(f"✅ Exclusion constraint {NO_OVERLAP_CONSTRAINT} is in place")
            elif connection.dialect.name == "postgresql":
                print(f"⚠️  {NO_OVERLAP_CONSTRAINT} is missing; tables created before it existed need a migration")
            else:
                print(
                    f"ℹ️  {connection.dialect.name} has no exclusion constraints; "
                    "overlaps are guarded by the professional row lock only"
                )


if __name__ == "__main__":
    init_database()
