"""
Domain errors for the booking core.

Services raise these; main.py maps them to HTTP responses.
The user-facing message for storage failures is intentionally generic,
the underlying error goes to logs only.
"""

GENERIC_FAILURE_MESSAGE = "Could not complete action, try again"


class BookingError(Exception):
    """Base class for all booking core errors."""


class ValidationError(BookingError):
    """Malformed input, rejected before touching storage."""


class NotFoundError(BookingError):
    """Referenced id does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class SlotUnavailableError(BookingError):
    """Slot already reserved (lost race or stale read)."""

    def __init__(self, slot_id):
        self.slot_id = slot_id
        super().__init__(f"Slot {slot_id} is not available")


class GenerationInProgressError(BookingError):
    """Another generator holds the lock for this date."""

    def __init__(self, target_date):
        self.target_date = target_date
        super().__init__(f"Slot generation for {target_date} is already running")


class PersistenceError(BookingError):
    """Wraps any failure from the record store."""


class NotificationError(BookingError):
    """Notification delivery failed. Never propagated past the coordinator."""
