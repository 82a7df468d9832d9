# backend/agenda/services/slots/__init__.py
"""
Slots module.

Generation: weekly availability rules → dated slot rows (idempotent per date)
Query: slots of a local day, bookable weekdays, derived period
"""

from .config import BookingConfig, get_booking_config
from .generator import GenerationSummary, generate_day_slots, generate_upcoming_slots
from .locks import GenerationLocker
from .query import list_available_weekdays, list_slots_by_date, slot_local_time, slot_period

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "GenerationLocker",
    "GenerationSummary",
    "generate_day_slots",
    "generate_upcoming_slots",
    "list_slots_by_date",
    "list_available_weekdays",
    "slot_local_time",
    "slot_period",
]
