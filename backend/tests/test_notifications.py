import json
from datetime import datetime
from unittest.mock import MagicMock

import httpx
import pytest

from agenda.config import Settings
from agenda.errors import NotificationError
from agenda.services.events import NOTIFICATIONS_QUEUE, emit_event
from agenda.services.notification_consumer import process_next_event
from agenda.services.notifications import (
    BOOKING_CONFIRMED,
    QueueNotifier,
    WebhookNotifier,
    build_booking_notification,
    build_notifier,
    format_long_date,
    format_time,
)

from .conftest import RecordingNotifier

PAYLOAD = {"name": "Alice", "date": "19 de outubro de 2026", "time": "08:00hrs", "email": ""}


def test_portuguese_date_and_time_format():
    local = datetime(2026, 3, 5, 9, 5)

    assert format_long_date(local) == "5 de março de 2026"
    assert format_time(local) == "09:05hrs"
    assert build_booking_notification("Alice", local, None) == {
        "name": "Alice",
        "date": "5 de março de 2026",
        "time": "09:05hrs",
        "email": "",
    }


# ── Webhook ──────────────────────────────────────────────────────────────


def make_webhook(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return WebhookNotifier("http://hooks.test/booking", client=client)


def test_webhook_posts_json():
    received = []

    def handler(request):
        received.append((request.method, str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"ok": True})

    make_webhook(handler).send(PAYLOAD)

    assert received == [("POST", "http://hooks.test/booking", PAYLOAD)]


def test_webhook_error_status_raises():
    webhook = make_webhook(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(NotificationError, match="500"):
        webhook.send(PAYLOAD)


def test_webhook_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NotificationError):
        make_webhook(handler).send(PAYLOAD)


# ── Queue ────────────────────────────────────────────────────────────────


def test_queue_notifier_pushes_event():
    redis = MagicMock()

    QueueNotifier(redis).send(PAYLOAD)

    queue, raw = redis.rpush.call_args.args
    event = json.loads(raw)
    assert queue == NOTIFICATIONS_QUEUE
    assert event["type"] == BOOKING_CONFIRMED
    assert {k: event[k] for k in PAYLOAD} == PAYLOAD
    assert isinstance(event["ts"], int)


def test_queue_notifier_redis_down():
    redis = MagicMock()
    redis.rpush.side_effect = ConnectionError("redis down")

    assert emit_event(redis, BOOKING_CONFIRMED, PAYLOAD) is False
    with pytest.raises(NotificationError):
        QueueNotifier(redis).send(PAYLOAD)


# ── Consumer ─────────────────────────────────────────────────────────────


def queued(*items):
    redis = MagicMock()
    redis.blpop.side_effect = list(items)
    return redis


def test_consumer_delivers_booking_event():
    event = json.dumps({"type": BOOKING_CONFIRMED, **PAYLOAD, "ts": 1})
    webhook = RecordingNotifier()

    assert process_next_event(queued((NOTIFICATIONS_QUEUE, event.encode())), webhook) is True
    assert webhook.sent == [PAYLOAD]


def test_consumer_timeout():
    webhook = RecordingNotifier()

    assert process_next_event(queued(None), webhook) is False
    assert webhook.sent == []


@pytest.mark.parametrize("raw", ["not json", json.dumps({"type": "something_else"})])
def test_consumer_drops_bad_events(raw):
    webhook = RecordingNotifier()

    assert process_next_event(queued((NOTIFICATIONS_QUEUE, raw)), webhook) is True
    assert webhook.sent == []


def test_consumer_survives_delivery_failure():
    event = json.dumps({"type": BOOKING_CONFIRMED, **PAYLOAD})
    webhook = make_webhook(lambda request: httpx.Response(502))

    assert process_next_event(queued((NOTIFICATIONS_QUEUE, event)), webhook) is True


# ── Channel selection ────────────────────────────────────────────────────


def test_build_notifier_disabled_without_url():
    assert build_notifier(Settings(_env_file=None, notify_webhook_url=""), MagicMock()) is None


def test_build_notifier_prefers_queue_with_redis():
    settings = Settings(_env_file=None, notify_webhook_url="http://hooks.test/booking")

    assert isinstance(build_notifier(settings, MagicMock()), QueueNotifier)

    direct = build_notifier(settings, None)
    assert isinstance(direct, WebhookNotifier)
    assert direct.url == "http://hooks.test/booking"
