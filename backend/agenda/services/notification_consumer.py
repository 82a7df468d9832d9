# backend/agenda/services/notification_consumer.py
"""
Notification consumer loop.

Drains booking events from Redis → webhook.

Flow:
1. BLPOP events:notifications (1s timeout, runs in a worker thread)
2. Drop malformed JSON and unknown event types
3. POST the payload to the webhook
4. On delivery failure: log and drop (notifications are best-effort)

Started as asyncio task in the app lifespan when Redis and a webhook URL are set.
"""

import asyncio
import json
import logging
from redis import Redis

from ..errors import NotificationError
from .events import NOTIFICATIONS_QUEUE
from .notifications import BOOKING_CONFIRMED, WebhookNotifier

logger = logging.getLogger(__name__)

POP_TIMEOUT = 1  # seconds
PAYLOAD_FIELDS = ("name", "date", "time", "email")


async def notification_consumer_loop(redis: Redis, webhook: WebhookNotifier) -> None:
    """Consume queued booking notifications until cancelled."""
    logger.info("notification_consumer_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(process_next_event, redis, webhook)
            except asyncio.CancelledError:
                logger.info("notification_consumer_loop cancelled")
                raise
            except Exception:
                logger.exception("notification_consumer_loop error, retrying in 5s")
                await asyncio.sleep(5)
    except asyncio.CancelledError:
        pass


def process_next_event(redis: Redis, webhook: WebhookNotifier) -> bool:
    """
    Pop and deliver a single event (synchronous).

    Returns:
        True when an event was popped (delivered or dropped), False on timeout.
    """
    item = redis.blpop([NOTIFICATIONS_QUEUE], timeout=POP_TIMEOUT)
    if not item:
        return False

    _, raw = item
    if isinstance(raw, bytes):
        raw = raw.decode()

    try:
        event = json.loads(raw)
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in {NOTIFICATIONS_QUEUE}: {raw[:200]}")
        return True

    if event.get("type") != BOOKING_CONFIRMED:
        logger.warning(f"Unknown event type dropped: {event.get('type')}")
        return True

    payload = {field: event.get(field, "") for field in PAYLOAD_FIELDS}
    try:
        webhook.send(payload)
    except NotificationError as e:
        logger.error(f"Booking notification for {payload['name']} not delivered: {e}")
    return True
