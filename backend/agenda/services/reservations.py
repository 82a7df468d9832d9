"""
Reservation coordinator: the only concurrency-sensitive write path.

At most one reservation per slot. The slot is read first, then a write
transaction is opened (BEGIN IMMEDIATE on SQLite, so concurrent bookings
queue instead of deadlocking on lock upgrade). The slot flip is a single
conditional update (compare-and-swap):

    UPDATE slots SET available = false, reservation_id = :r
    WHERE id = :slot AND available = true

run in the same transaction as the reservation insert. Zero affected rows
means another session won the race: the transaction is rolled back (no
orphan reservation) and SlotUnavailableError is raised.

The booking notification is sent after commit and is best-effort.
"""

import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import begin_write
from ..errors import NotFoundError, NotificationError, PersistenceError, SlotUnavailableError, ValidationError
from ..models import Patients, Reservations, Slots
from .notifications import Notifier, build_booking_notification
from .slots.calendar import to_local
from .slots.config import BookingConfig, get_booking_config

logger = logging.getLogger(__name__)

STATUS_CONFIRMED = "confirmed"


def reserve_slot(
    db: Session,
    slot_id: int,
    user_id: str,
    user_name: str,
    notifier: Notifier | None = None,
    config: BookingConfig | None = None,
) -> Reservations:
    """
    Reserve a slot for a user.

    Raises:
        ValidationError: empty user id/name
        NotFoundError: slot does not exist
        SlotUnavailableError: slot already reserved (stale read or lost race)
        PersistenceError: any storage failure, nothing is left half-written
    """
    config = config or get_booking_config()
    if not user_id or not str(user_id).strip():
        raise ValidationError("user_id is required")
    if not user_name or not user_name.strip():
        raise ValidationError("user_name is required")

    # Step 1: Read (fast rejection; the real guard is the conditional update)
    slot = _get_slot(db, slot_id)
    if not slot.available:
        raise SlotUnavailableError(slot_id)
    starts_at = slot.starts_at

    # Step 2: Reservation + conditional slot flip, one write transaction
    try:
        begin_write(db)
        reservation = Reservations(
            slot_starts_at=starts_at,
            user_id=str(user_id),
            user_name=user_name.strip(),
            status=STATUS_CONFIRMED,
        )
        db.add(reservation)
        db.flush()

        updated = (
            db.query(Slots)
            .filter(Slots.id == slot_id, Slots.available.is_(True))
            .update(
                {Slots.available: False, Slots.reservation_id: reservation.id},
                synchronize_session=False,
            )
        )
        if updated != 1:
            db.rollback()
            logger.info(f"Slot {slot_id} lost to a concurrent reservation (user={user_id})")
            raise SlotUnavailableError(slot_id)

        db.commit()
        db.refresh(reservation)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Reservation of slot {slot_id} failed: {e}")
        raise PersistenceError(f"Failed to reserve slot {slot_id}: {e}") from e

    logger.info(
        f"Slot {slot_id} reserved: reservation={reservation.id} user={user_id} "
        f"at {reservation.slot_starts_at.isoformat()}"
    )

    # Step 3: Best-effort notification
    _notify_safely(db, reservation, notifier, config)
    return reservation


def get_reservation(db: Session, reservation_id: int) -> Reservations:
    try:
        obj = db.get(Reservations, reservation_id)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to load reservation {reservation_id}: {e}") from e
    if not obj:
        raise NotFoundError("Reservation", reservation_id)
    return obj


# ── Helpers ──────────────────────────────────────────────────────────────


def _get_slot(db: Session, slot_id: int) -> Slots:
    try:
        slot = db.get(Slots, slot_id)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to load slot {slot_id}: {e}") from e
    if not slot:
        raise NotFoundError("Slot", slot_id)
    return slot


def _notify_safely(
    db: Session,
    reservation: Reservations,
    notifier: Notifier | None,
    config: BookingConfig,
) -> None:
    """Send the booking notification. Never raises."""
    if notifier is None:
        return

    name, email = reservation.user_name, None
    try:
        patient = db.get(Patients, reservation.user_id)
        if patient:
            name = patient.name or name
            email = patient.email
    except SQLAlchemyError as e:
        logger.warning(f"Patient lookup failed for user={reservation.user_id}: {e}")

    payload = build_booking_notification(name, to_local(reservation.slot_starts_at, config), email)
    try:
        notifier.send(payload)
    except NotificationError as e:
        logger.error(f"Booking notification failed for reservation={reservation.id}: {e}")
    except Exception:
        logger.exception(f"Unexpected error notifying reservation={reservation.id}")
