import sqlite3
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event

from agenda.config import Settings
from agenda.errors import GENERIC_FAILURE_MESSAGE
from agenda.main import create_app

from .conftest import RecordingNotifier

MONDAY_RULE = {
    "day_of_week": 1,
    "period": "morning",
    "start_time": "08:00",
    "end_time": "10:00",
    "step_minutes": 60,
}


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(engine, config, notifier):
    settings = Settings(_env_file=None, redis_url=None, notify_webhook_url="", auto_generate_days=0)
    app = create_app(settings=settings, engine=engine, notifier=notifier, booking_config=config)
    with TestClient(app) as client:
        yield client


def test_booking_flow(client, notifier):
    rule = client.post("/availability_rules/", json=MONDAY_RULE)
    assert rule.status_code == 201

    assert client.get("/slots/weekdays").json() == {"weekdays": [1]}

    next_date = client.get("/slots/next-date", params={"weekday": 1}).json()
    assert next_date["weekday"] == 1
    target = next_date["date"]
    assert date.fromisoformat(target).isoweekday() == 1

    generated = client.post("/slots/generate", json={"date": target}).json()
    assert generated["days_with_slots"] == 1
    assert generated["slots_created"] == 2
    assert generated["failed_days"] == []

    # Regeneration keeps the same slots
    assert client.post("/slots/generate", json={"date": target}).json()["slots_created"] == 0

    day = client.get("/slots/day", params={"date": target}).json()
    assert day["weekday"] == 1
    assert [s["time"] for s in day["slots"]] == ["08:00", "09:00"]
    assert all(s["period"] == "morning" for s in day["slots"])
    first, second = day["slots"]

    booked = client.post("/reservations/", json={"slot_id": first["id"], "user_id": "u-1", "user_name": "Alice"})
    assert booked.status_code == 201
    reservation = booked.json()
    assert reservation["status"] == "confirmed"

    day = client.get("/slots/day", params={"date": target}).json()
    assert [(s["time"], s["available"], s["reservation_id"]) for s in day["slots"]] == [
        ("08:00", False, reservation["id"]),
        ("09:00", True, None),
    ]

    open_only = client.get("/slots/day", params={"date": target, "only_available": True}).json()
    assert [s["id"] for s in open_only["slots"]] == [second["id"]]

    assert client.get(f"/reservations/{reservation['id']}").json()["user_name"] == "Alice"
    assert len(notifier.sent) == 1
    assert notifier.sent[0]["time"] == "08:00hrs"


def test_double_booking_conflict(client):
    client.post("/availability_rules/", json=MONDAY_RULE)
    client.post("/slots/generate", json={"date": "2026-10-19"})
    slot_id = client.get("/slots/day", params={"date": "2026-10-19"}).json()["slots"][0]["id"]

    body = {"slot_id": slot_id, "user_id": "u-1", "user_name": "Alice"}
    assert client.post("/reservations/", json=body).status_code == 201

    again = client.post("/reservations/", json={**body, "user_id": "u-2", "user_name": "Bob"})
    assert again.status_code == 409


def test_not_found_errors(client):
    assert client.post("/reservations/", json={"slot_id": 999, "user_id": "u-1", "user_name": "A"}).status_code == 404
    assert client.get("/reservations/999").status_code == 404
    assert client.get("/availability_rules/999").status_code == 404
    assert client.patch("/availability_rules/999", json={"active": False}).status_code == 404


@pytest.mark.parametrize("overrides", [
    {"start_time": "10:00", "end_time": "08:00"},
    {"step_minutes": 0},
    {"day_of_week": 7},
    {"start_time": "8am"},
])
def test_invalid_rule_rejected(client, overrides):
    assert client.post("/availability_rules/", json={**MONDAY_RULE, **overrides}).status_code == 422
    assert client.get("/availability_rules/").json() == []


@pytest.mark.parametrize("body", [{}, {"days": 3, "date": "2026-10-19"}, {"days": 0}, {"days": 500}])
def test_generate_rejects_bad_request(client, body):
    assert client.post("/slots/generate", json=body).status_code == 422


def test_next_date_rejects_bad_weekday(client):
    assert client.get("/slots/next-date", params={"weekday": 7}).status_code == 422


def test_rule_update_and_delete(client):
    rule_id = client.post("/availability_rules/", json=MONDAY_RULE).json()["id"]

    patched = client.patch(f"/availability_rules/{rule_id}", json={"active": False})
    assert patched.status_code == 200
    assert patched.json()["active"] is False
    assert patched.json()["end_time"] == "10:00"
    assert client.get("/slots/weekdays").json() == {"weekdays": []}

    invalid = client.patch(f"/availability_rules/{rule_id}", json={"end_time": "07:00"})
    assert invalid.status_code == 422

    assert client.delete(f"/availability_rules/{rule_id}").status_code == 204
    assert client.delete(f"/availability_rules/{rule_id}").status_code == 204
    assert client.get("/availability_rules/").json() == []


def test_storage_failure_returns_generic_message(client, engine):
    def fail_rule_reads(conn, cursor, statement, parameters, context, executemany):
        if "FROM availability_rules" in statement:
            raise sqlite3.OperationalError("disk I/O error")

    event.listen(engine, "before_cursor_execute", fail_rule_reads)
    try:
        response = client.get("/availability_rules/")
    finally:
        event.remove(engine, "before_cursor_execute", fail_rule_reads)

    assert response.status_code == 503
    assert response.json() == {"detail": GENERIC_FAILURE_MESSAGE}


def test_health(client):
    assert client.get("/health").json() == {"db": True, "redis": None}


def test_generate_while_date_is_locked_conflicts(client):
    client.post("/availability_rules/", json=MONDAY_RULE)

    with client.app.state.generation_locker.hold(date(2026, 10, 19)):
        busy = client.post("/slots/generate", json={"date": "2026-10-19"})

    assert busy.status_code == 409
    assert client.get("/slots/day", params={"date": "2026-10-19"}).json()["slots"] == []

    assert client.post("/slots/generate", json={"date": "2026-10-19"}).json()["slots_created"] == 2


@pytest.mark.parametrize("body", [{"active": None}, {"step_minutes": None}, {"start_time": None}])
def test_rule_patch_rejects_nulls(client, body):
    rule_id = client.post("/availability_rules/", json=MONDAY_RULE).json()["id"]

    response = client.patch(f"/availability_rules/{rule_id}", json=body)

    assert response.status_code == 422
    assert client.get(f"/availability_rules/{rule_id}").json()["active"] is True
