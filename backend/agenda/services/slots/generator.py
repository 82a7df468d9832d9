# backend/agenda/services/slots/generator.py
"""
Slot generation: weekly rules → dated slot rows.

For a target date:
  1. Active rules for the date's weekday (0 = Sunday)
  2. Each rule tiles [start_time, end_time) every step_minutes;
     only full strides are emitted (no short trailing slot)
  3. Each start (local wall-clock) is stored as its UTC instant
  4. Natural key (rule_id, starts_at): existing rows are reused, so
     running twice for the same date never duplicates slots

Partial-failure tolerant: a failed insert is logged and skipped,
the rest of the day (and the rest of the batch) goes on.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...database import begin_write
from ...errors import BookingError, GenerationInProgressError, PersistenceError, ValidationError
from ...models import AvailabilityRules, Slots
from .. import availability_rules
from .calendar import local_today, local_wall_clock, time_str_to_minutes, to_storage, weekday_of
from .config import BookingConfig, get_booking_config
from .locks import GenerationLocker

logger = logging.getLogger(__name__)

# One in-process locker per BookingConfig, for callers that do not pass one
_default_lockers: dict[BookingConfig, GenerationLocker] = {}


@dataclass
class GenerationSummary:
    """Aggregate result of a multi-day generation run."""
    start_date: date
    days_requested: int
    days_with_slots: int = 0
    slots_created: int = 0
    slots_total: int = 0
    failed_days: list[date] = field(default_factory=list)


def rule_start_minutes(rule: AvailabilityRules) -> list[int]:
    """
    Start offsets (minutes past local midnight) for one rule.

    08:00-09:00 step 30 → [480, 510]
    08:00-08:45 step 30 → [480]
    """
    start_min = time_str_to_minutes(rule.start_time)
    end_min = time_str_to_minutes(rule.end_time)
    step = rule.step_minutes
    if step <= 0:
        return []

    starts = []
    t = start_min
    while t + step <= end_min:
        starts.append(t)
        t += step
    return starts


def generate_day_slots(
    db: Session,
    target_date: date,
    config: BookingConfig | None = None,
    locker: GenerationLocker | None = None,
) -> list[Slots]:
    """
    Generate (or reuse) slots for target_date.

    Returns:
        Every slot produced by the active rules for that date, ordered by starts_at.
        Empty list when no active rule matches the weekday.
    """
    slots, _ = _generate_day(db, target_date, config, locker)
    return slots


def generate_upcoming_slots(
    db: Session,
    days: int,
    today: date | None = None,
    config: BookingConfig | None = None,
    locker: GenerationLocker | None = None,
) -> GenerationSummary:
    """Generate slots for today .. today + days - 1 (local calendar)."""
    config = config or get_booking_config()
    if not 1 <= days <= config.horizon_days:
        raise ValidationError(f"days must be between 1 and {config.horizon_days}, got {days}")

    today = today or local_today(config)
    summary = GenerationSummary(start_date=today, days_requested=days)

    for offset in range(days):
        target = today + timedelta(days=offset)
        try:
            slots, created = _generate_day(db, target, config, locker)
        except GenerationInProgressError:
            # Another generator owns this date; the caller decides whether to retry
            raise
        except (BookingError, SQLAlchemyError):
            db.rollback()
            logger.exception(f"Slot generation failed for {target}")
            summary.failed_days.append(target)
            continue

        if slots:
            summary.days_with_slots += 1
        summary.slots_created += created
        summary.slots_total += len(slots)

    logger.info(
        f"Generated slots for {days} days from {today}: "
        f"{summary.slots_created} new, {summary.slots_total} total, "
        f"{summary.days_with_slots} days with slots, {len(summary.failed_days)} failed"
    )
    return summary


# ── Internals ────────────────────────────────────────────────────────────


def _get_default_locker(config: BookingConfig) -> GenerationLocker:
    locker = _default_lockers.get(config)
    if locker is None:
        locker = _default_lockers.setdefault(config, GenerationLocker(config=config))
    return locker


def _generate_day(
    db: Session,
    target_date: date,
    config: BookingConfig | None,
    locker: GenerationLocker | None,
) -> tuple[list[Slots], int]:
    config = config or get_booking_config()
    locker = locker or _get_default_locker(config)

    with locker.hold(target_date):
        try:
            begin_write(db)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to start slot generation for {target_date}: {e}") from e

        rules = availability_rules.list_rules_by_weekday(db, weekday_of(target_date))
        if not rules:
            db.commit()
            return [], 0

        slots: list[Slots] = []
        created = 0
        for rule in rules:
            rule_slots, rule_created = _generate_rule_slots(db, rule, target_date, config)
            slots.extend(rule_slots)
            created += rule_created

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to commit slots for {target_date}: {e}") from e

    slots.sort(key=lambda s: (s.starts_at, s.id))
    logger.info(f"Slots for {target_date}: {created} created, {len(slots)} total")
    return slots, created


def _generate_rule_slots(
    db: Session,
    rule: AvailabilityRules,
    target_date: date,
    config: BookingConfig,
) -> tuple[list[Slots], int]:
    """Slots of one rule on one date: reuse existing, insert missing."""
    starts = [
        to_storage(local_wall_clock(target_date, minutes, config), config)
        for minutes in rule_start_minutes(rule)
    ]
    if not starts:
        return [], 0

    existing = {s.starts_at: s for s in _find_existing(db, rule.id, starts)}

    slots: list[Slots] = []
    created = 0
    for starts_at in starts:
        slot = existing.get(starts_at)
        if slot is not None:
            slots.append(slot)
            continue

        try:
            with db.begin_nested():
                slot = _insert_slot(db, rule.id, starts_at)
            created += 1
        except IntegrityError:
            # Concurrent generator got there first
            slot = _find_existing(db, rule.id, [starts_at])
            slot = slot[0] if slot else None
            if slot is None:
                logger.warning(f"Slot insert conflict for rule={rule.id} at {starts_at.isoformat()}, skipped")
                continue
        except SQLAlchemyError as e:
            logger.warning(f"Failed to insert slot for rule={rule.id} at {starts_at.isoformat()}: {e}")
            continue

        slots.append(slot)

    return slots, created


def _find_existing(db: Session, rule_id: int, starts: list[datetime]) -> list[Slots]:
    return (
        db.query(Slots)
        .filter(
            Slots.rule_id == rule_id,
            Slots.starts_at.in_(starts),
        )
        .all()
    )


def _insert_slot(db: Session, rule_id: int, starts_at: datetime) -> Slots:
    slot = Slots(starts_at=starts_at, available=True, rule_id=rule_id)
    db.add(slot)
    db.flush()
    return slot
