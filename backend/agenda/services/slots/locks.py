# backend/agenda/services/slots/locks.py
"""
Per-date advisory lock for slot generation.

Key format: slots:generate:{date}
With Redis: redis-py Lock (SET NX PX), shared across processes.
Without Redis: in-process threading.Lock per date.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from redis import Redis
from redis.exceptions import LockError, RedisError

from ...errors import GenerationInProgressError
from .config import BookingConfig, get_booking_config

logger = logging.getLogger(__name__)


class GenerationLocker:
    """Serializes generation for the same date."""

    KEY_PREFIX = "slots:generate"

    def __init__(self, redis: Redis | None = None, config: BookingConfig | None = None):
        self.redis = redis
        self.config = config or get_booking_config()
        self._local_locks: dict[date, threading.Lock] = {}
        self._guard = threading.Lock()

    def _key(self, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{dt.isoformat()}"

    @contextmanager
    def hold(self, dt: date):
        """
        Hold the lock for dt for the duration of the block.

        Raises GenerationInProgressError when the lock is not acquired
        within lock_blocking_seconds.
        """
        if self.redis is not None:
            with self._redis_lock(dt):
                yield
        else:
            with self._local_lock(dt):
                yield

    @contextmanager
    def _redis_lock(self, dt: date):
        lock = self.redis.lock(
            self._key(dt),
            timeout=self.config.lock_timeout_seconds,
            blocking_timeout=self.config.lock_blocking_seconds,
        )
        if not lock.acquire():
            raise GenerationInProgressError(dt)
        try:
            yield
        finally:
            try:
                lock.release()
            except (LockError, RedisError):
                # Expired under us; the next generator is protected by the unique key
                logger.warning(f"Generation lock for {dt} was lost before release")

    @contextmanager
    def _local_lock(self, dt: date):
        with self._guard:
            lock = self._local_locks.setdefault(dt, threading.Lock())
        if not lock.acquire(timeout=self.config.lock_blocking_seconds):
            raise GenerationInProgressError(dt)
        try:
            yield
        finally:
            lock.release()
