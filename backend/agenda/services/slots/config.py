# backend/agenda/services/slots/config.py
"""
Booking configuration for slot generation and display.
"""

from dataclasses import dataclass
from datetime import timedelta, timezone
from functools import lru_cache


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the booking/slots system.

    Attributes:
        utc_offset_minutes: Fixed local offset for every wall-clock value (-180 = UTC-3)
        horizon_days: Maximum number of days a batch generation may cover
        lock_timeout_seconds: Lifetime of the per-date generation lock
        lock_blocking_seconds: How long a second generator waits for the lock
    """
    utc_offset_minutes: int = -180
    horizon_days: int = 90
    lock_timeout_seconds: int = 60
    lock_blocking_seconds: float = 5.0

    def __post_init__(self):
        """Validate configuration."""
        if not -14 * 60 <= self.utc_offset_minutes <= 14 * 60:
            raise ValueError(f"utc_offset_minutes out of range: {self.utc_offset_minutes}")
        if self.horizon_days < 1:
            raise ValueError(f"horizon_days must be positive, got {self.horizon_days}")

    @property
    def tz(self) -> timezone:
        """Local fixed-offset timezone."""
        return timezone(timedelta(minutes=self.utc_offset_minutes))


@lru_cache
def get_booking_config() -> BookingConfig:
    """
    Get booking configuration (singleton), seeded from Settings.
    """
    from ...config import settings

    return BookingConfig(
        utc_offset_minutes=settings.utc_offset_minutes,
        lock_timeout_seconds=settings.generation_lock_timeout_seconds,
    )
