"""
Booking notifications (fire-and-forget).

Payload delivered out-of-band after a reservation commits:
    {"name": "Alice", "date": "20 de outubro de 2026", "time": "08:00hrs", "email": ""}

Channels:
- QueueNotifier   → Redis list events:notifications (drained by notification_consumer)
- WebhookNotifier → HTTP POST with httpx

Every failure surfaces as NotificationError; the reservation coordinator
logs it and never lets it fail the booking.
"""

import logging
from datetime import datetime
from typing import Protocol

import httpx
from redis import Redis

from ..errors import NotificationError
from .events import emit_event

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking_confirmed"

PT_MONTHS = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]


class Notifier(Protocol):
    def send(self, payload: dict) -> None: ...


def format_long_date(local: datetime) -> str:
    """20 de outubro de 2026"""
    return f"{local.day} de {PT_MONTHS[local.month - 1]} de {local.year}"


def format_time(local: datetime) -> str:
    """08:00hrs"""
    return f"{local.hour:02d}:{local.minute:02d}hrs"


def build_booking_notification(name: str, local: datetime, email: str | None = None) -> dict:
    return {
        "name": name,
        "date": format_long_date(local),
        "time": format_time(local),
        "email": email or "",
    }


class WebhookNotifier:
    """POSTs the payload as JSON to a webhook URL."""

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.Client | None = None):
        self.url = url
        self.timeout = timeout
        self.client = client

    def send(self, payload: dict) -> None:
        try:
            if self.client is not None:
                response = self.client.post(self.url, json=payload, timeout=self.timeout)
            else:
                response = httpx.post(self.url, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook request failed: {e}") from e

        if not response.is_success:
            raise NotificationError(
                f"Webhook returned {response.status_code}: {response.text[:200]}"
            )
        logger.info(f"Notification delivered to webhook for {payload.get('name')}")


class QueueNotifier:
    """Queues the payload on Redis; delivery happens in the consumer loop."""

    def __init__(self, redis: Redis):
        self.redis = redis

    def send(self, payload: dict) -> None:
        if not emit_event(self.redis, BOOKING_CONFIRMED, payload):
            raise NotificationError("Failed to queue booking notification")


def build_notifier(settings, redis: Redis | None = None) -> Notifier | None:
    """
    Pick the notification channel from settings.

    Redis + webhook URL → queue (consumer delivers to the webhook)
    webhook URL only    → direct webhook
    nothing configured  → None (reservations are only logged)
    """
    if not settings.notify_webhook_url:
        logger.warning("NOTIFY_WEBHOOK_URL not set, booking notifications disabled")
        return None
    if redis is not None:
        return QueueNotifier(redis)
    return WebhookNotifier(settings.notify_webhook_url, timeout=settings.notify_timeout_seconds)
