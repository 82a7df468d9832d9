"""
backend/agenda/services/events.py

Event emitter: pushes events to a Redis list for the notification consumer.

Queue:
- events:notifications: booking notifications, drained by notification_consumer_loop
"""

import json
import time
import logging
from redis import Redis

logger = logging.getLogger(__name__)

NOTIFICATIONS_QUEUE = "events:notifications"


def emit_event(redis: Redis, event_type: str, payload: dict, queue: str = NOTIFICATIONS_QUEUE) -> bool:
    """
    Emit an event onto a Redis list.

    Returns:
        True when the event was queued, False when Redis rejected it.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis.rpush(queue, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {queue}")
        return True
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
        return False
