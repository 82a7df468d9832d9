"""
Periodic slot generation.

Keeps the next AUTO_GENERATE_DAYS days generated without an operator
clicking "generate". Generation is idempotent per date, so each pass only
inserts what is missing (new rules, days entering the window).

Runs as an asyncio task in the app lifespan.
Uses a synchronous DB session (via asyncio.to_thread).
"""

import asyncio
import logging
from sqlalchemy.orm import sessionmaker

from .slots.config import BookingConfig
from .slots.generator import GenerationSummary, generate_upcoming_slots
from .slots.locks import GenerationLocker

logger = logging.getLogger(__name__)


async def slot_generation_loop(
    session_factory: sessionmaker,
    days: int,
    interval_seconds: int,
    config: BookingConfig | None = None,
    locker: GenerationLocker | None = None,
) -> None:
    """Generate upcoming slots every interval_seconds until cancelled."""
    logger.info(f"slot_generation_loop started (days={days}, every {interval_seconds}s)")

    try:
        while True:
            try:
                await asyncio.to_thread(run_generation_pass, session_factory, days, config, locker)
            except asyncio.CancelledError:
                logger.info("slot_generation_loop cancelled")
                raise
            except Exception:
                logger.exception("slot_generation_loop error")

            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        pass


def run_generation_pass(
    session_factory: sessionmaker,
    days: int,
    config: BookingConfig | None = None,
    locker: GenerationLocker | None = None,
) -> GenerationSummary:
    """One generation pass with its own session (synchronous)."""
    db = session_factory()
    try:
        return generate_upcoming_slots(db, days, config=config, locker=locker)
    finally:
        db.close()
