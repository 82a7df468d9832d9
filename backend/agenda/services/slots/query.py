# backend/agenda/services/slots/query.py
"""
Read side for the booking UI.

Period (morning/afternoon) is never stored: it is derived from the slot's
local hour with the same fixed offset the generator used.
"""

from datetime import date, datetime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import PersistenceError
from ...models import Slots
from .. import availability_rules
from .calendar import local_day_bounds, period_of, to_local
from .config import BookingConfig, get_booking_config


def list_slots_by_date(
    db: Session,
    target_date: date,
    period: str | None = None,
    only_available: bool = False,
    config: BookingConfig | None = None,
) -> list[Slots]:
    """All slots starting within the local day, ordered by start."""
    config = config or get_booking_config()
    day_start, day_end = local_day_bounds(target_date, config)

    query = db.query(Slots).filter(
        Slots.starts_at >= day_start,
        Slots.starts_at < day_end,
    )
    if only_available:
        query = query.filter(Slots.available.is_(True))

    try:
        slots = query.order_by(Slots.starts_at, Slots.id).all()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to list slots for {target_date}: {e}") from e

    if period is not None:
        slots = [s for s in slots if slot_period(s, config) == period]
    return slots


def list_available_weekdays(db: Session) -> list[int]:
    """Weekdays bookable per configuration, whether or not slots exist yet."""
    return availability_rules.list_available_weekdays(db)


def slot_local_time(slot: Slots, config: BookingConfig | None = None) -> datetime:
    return to_local(slot.starts_at, config)


def slot_period(slot: Slots, config: BookingConfig | None = None) -> str:
    return period_of(slot_local_time(slot, config))
