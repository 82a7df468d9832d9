from .schedule import AvailabilityRules, Base, Patients, Reservations, Slots, UTCDateTime

__all__ = [
    "Base",
    "UTCDateTime",
    "AvailabilityRules",
    "Slots",
    "Reservations",
    "Patients",
]
