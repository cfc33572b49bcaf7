"""
Scheduling Package

Slot computation and conflict-free booking.
"""

from .availability import available_slots
from .booking import cancel_booking, create_booking, get_booking, list_bookings, reschedule_booking
from .errors import (BookingConflict, BookingError, InvalidInput, InvalidTransition,
                     NotFound, StoreUnavailable)
from .lead_time import LeadTimePolicy
from .slots import generate_slots
from .tenancy import TenantContext, resolve_tenant
