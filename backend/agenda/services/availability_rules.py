"""
Availability rule store.

CRUD over recurring weekly rules (weekday, period, time window, step).
Rules only feed generation; slots already generated from a rule are never
touched when the rule is edited, deactivated or deleted.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError, PersistenceError, ValidationError
from ..models import AvailabilityRules
from .slots.calendar import AFTERNOON, MORNING, time_str_to_minutes

logger = logging.getLogger(__name__)

RULE_FIELDS = ("day_of_week", "period", "start_time", "end_time", "step_minutes", "active")
PERIODS = (MORNING, AFTERNOON)


def validate_rule_fields(fields: dict) -> None:
    """Raise ValidationError unless fields describe a usable rule."""
    day = fields.get("day_of_week")
    if not isinstance(day, int) or not 0 <= day <= 6:
        raise ValidationError(f"day_of_week must be 0-6, got {day!r}")

    if fields.get("period") not in PERIODS:
        raise ValidationError(f"period must be one of {PERIODS}, got {fields.get('period')!r}")

    try:
        start_min = time_str_to_minutes(fields.get("start_time"))
        end_min = time_str_to_minutes(fields.get("end_time"))
    except (TypeError, ValueError) as e:
        raise ValidationError(str(e)) from e

    if start_min >= end_min:
        raise ValidationError(
            f"start_time must be before end_time "
            f"({fields['start_time']} >= {fields['end_time']})"
        )

    step = fields.get("step_minutes")
    if not isinstance(step, int) or isinstance(step, bool) or step <= 0:
        raise ValidationError(f"step_minutes must be a positive integer, got {step!r}")

    if not isinstance(fields.get("active"), bool):
        raise ValidationError(f"active must be true or false, got {fields.get('active')!r}")


def list_rules(db: Session) -> list[AvailabilityRules]:
    try:
        return (
            db.query(AvailabilityRules)
            .order_by(AvailabilityRules.day_of_week, AvailabilityRules.start_time)
            .all()
        )
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to list rules: {e}") from e


def list_rules_by_weekday(db: Session, day_of_week: int) -> list[AvailabilityRules]:
    """Active rules for a weekday (0 = Sunday)."""
    try:
        return (
            db.query(AvailabilityRules)
            .filter(
                AvailabilityRules.day_of_week == day_of_week,
                AvailabilityRules.active.is_(True),
            )
            .order_by(AvailabilityRules.start_time, AvailabilityRules.id)
            .all()
        )
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to list rules for weekday {day_of_week}: {e}") from e


def get_rule(db: Session, rule_id: int) -> AvailabilityRules:
    try:
        obj = db.get(AvailabilityRules, rule_id)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to load rule {rule_id}: {e}") from e
    if not obj:
        raise NotFoundError("AvailabilityRule", rule_id)
    return obj


def create_rule(db: Session, data: dict) -> AvailabilityRules:
    fields = {k: data[k] for k in RULE_FIELDS if k in data}
    fields.setdefault("active", True)
    validate_rule_fields(fields)

    obj = AvailabilityRules(**fields)
    try:
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to create rule: {e}") from e

    logger.info(
        f"Rule created: id={obj.id} weekday={obj.day_of_week} "
        f"{obj.start_time}-{obj.end_time} every {obj.step_minutes} min"
    )
    return obj


def update_rule(db: Session, rule_id: int, data: dict) -> AvailabilityRules:
    """Partial update; the merged rule is re-validated before commit."""
    obj = get_rule(db, rule_id)

    changes = {k: v for k, v in data.items() if k in RULE_FIELDS}
    merged = {field: getattr(obj, field) for field in RULE_FIELDS}
    merged.update(changes)
    validate_rule_fields(merged)

    for field, value in changes.items():
        setattr(obj, field, value)

    try:
        db.commit()
        db.refresh(obj)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to update rule {rule_id}: {e}") from e

    logger.info(f"Rule updated: id={rule_id} fields={sorted(changes)}")
    return obj


def delete_rule(db: Session, rule_id: int) -> None:
    """Hard delete. Deleting a missing id is a no-op."""
    try:
        obj = db.get(AvailabilityRules, rule_id)
        if not obj:
            return
        db.delete(obj)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to delete rule {rule_id}: {e}") from e

    logger.info(f"Rule deleted: id={rule_id}")


def list_available_weekdays(db: Session) -> list[int]:
    """Sorted, deduplicated weekdays having at least one active rule."""
    try:
        rows = (
            db.query(AvailabilityRules.day_of_week)
            .filter(AvailabilityRules.active.is_(True))
            .distinct()
            .order_by(AvailabilityRules.day_of_week)
            .all()
        )
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to list available weekdays: {e}") from e
    return [day for (day,) in rows]
