# backend/agenda/services/slots/calendar.py
"""
Calendar/time helpers for a single fixed local offset.

Storage encoding: the true UTC instant (tz-aware on the Python side).
Read side accepts both encodings seen in stored data:
  - offset-annotated ("...Z", "...+00:00", aware datetime) → an instant, converted
  - offset-free ("2026-10-20T08:00:00", naive datetime)   → already local wall-clock
"""

import re
from datetime import date, datetime, timedelta, timezone

from .config import BookingConfig, get_booking_config

TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")

MORNING = "morning"
AFTERNOON = "afternoon"


def time_str_to_minutes(value: str) -> int:
    """'HH:MM' → minutes since midnight. Raises ValueError on bad input."""
    match = TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Time must be in HH:MM format, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_of(target_date: date) -> int:
    """Day of week with 0 = Sunday … 6 = Saturday."""
    return (target_date.weekday() + 1) % 7


def next_occurrence_of_weekday(today: date, target_weekday: int) -> date:
    """Next date (today inclusive) falling on target_weekday (0 = Sunday)."""
    if not 0 <= target_weekday <= 6:
        raise ValueError(f"Weekday must be 0-6, got {target_weekday}")
    return today + timedelta(days=(target_weekday - weekday_of(today)) % 7)


def local_today(config: BookingConfig | None = None) -> date:
    config = config or get_booking_config()
    return datetime.now(config.tz).date()


def local_wall_clock(target_date: date, minutes: int, config: BookingConfig | None = None) -> datetime:
    """Aware local datetime for target_date at minutes past local midnight."""
    config = config or get_booking_config()
    midnight = datetime.combine(target_date, datetime.min.time(), tzinfo=config.tz)
    return midnight + timedelta(minutes=minutes)


def to_storage(local: datetime, config: BookingConfig | None = None) -> datetime:
    """
    Local wall-clock moment → aware UTC instant.

    Naive input is taken as local wall-clock; aware input is just converted.
    """
    config = config or get_booking_config()
    if local.tzinfo is None:
        local = local.replace(tzinfo=config.tz)
    return local.astimezone(timezone.utc)


def to_local(value: datetime | str, config: BookingConfig | None = None) -> datetime:
    """Stored value (either encoding) → aware local datetime."""
    config = config or get_booking_config()

    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        value = datetime.fromisoformat(raw)

    if value.tzinfo is None:
        # Offset-free encoding already holds local wall-clock fields
        return value.replace(tzinfo=config.tz)
    return value.astimezone(config.tz)


def local_day_bounds(target_date: date, config: BookingConfig | None = None) -> tuple[datetime, datetime]:
    """UTC instants [start, end) covering the local calendar day."""
    start = local_wall_clock(target_date, 0, config)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def period_of(local: datetime) -> str:
    return MORNING if local.hour < 12 else AFTERNOON
