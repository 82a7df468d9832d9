from datetime import date

import pytest

from agenda.database import build_engine, build_session_factory, init_db
from agenda.errors import NotificationError
from agenda.services.availability_rules import create_rule
from agenda.services.slots import BookingConfig, GenerationLocker

# 2026-10-19 is a Monday (weekday 1 with 0 = Sunday)
MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
WEDNESDAY = date(2026, 10, 21)
SUNDAY = date(2026, 10, 25)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, payload: dict) -> None:
        self.sent.append(payload)


class FailingNotifier:
    def send(self, payload: dict) -> None:
        raise NotificationError("webhook down")


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'agenda.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def config():
    return BookingConfig(utc_offset_minutes=-180, lock_blocking_seconds=0.1)


@pytest.fixture
def locker(config):
    return GenerationLocker(config=config)


@pytest.fixture
def make_rule(db):
    def _make(day_of_week=1, start_time="08:00", end_time="09:00", step_minutes=30,
              period="morning", active=True):
        return create_rule(db, {
            "day_of_week": day_of_week,
            "period": period,
            "start_time": start_time,
            "end_time": end_time,
            "step_minutes": step_minutes,
            "active": active,
        })
    return _make
