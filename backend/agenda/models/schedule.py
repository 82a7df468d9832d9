from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

Base = declarative_base()
metadata = Base.metadata


class UTCDateTime(TypeDecorator):
    """
    Stores the true UTC instant as a naive DATETIME, returns it tz-aware.

    Naive values on the way in are rejected: the caller has to say which
    instant it means (see services/slots/calendar.to_storage).
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime cannot be stored: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AvailabilityRules(Base):
    __tablename__ = 'availability_rules'

    id = Column(Integer, primary_key=True)
    day_of_week = Column(Integer, nullable=False, index=True)  # 0 = Sunday
    period = Column(Text, nullable=False)  # morning / afternoon
    start_time = Column(Text, nullable=False)  # "HH:MM" local
    end_time = Column(Text, nullable=False)
    step_minutes = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, server_default=text('1'), default=True)

    slots = relationship('Slots', back_populates='rule')


class Reservations(Base):
    __tablename__ = 'reservations'

    id = Column(Integer, primary_key=True)
    slot_starts_at = Column(UTCDateTime, nullable=False)
    user_id = Column(Text, nullable=False)
    user_name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'confirmed'"), default="confirmed")
    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)


class Slots(Base):
    __tablename__ = 'slots'
    __table_args__ = (
        UniqueConstraint('rule_id', 'starts_at', name='uq_slots_rule_starts_at'),
    )

    id = Column(Integer, primary_key=True)
    starts_at = Column(UTCDateTime, nullable=False, index=True)
    available = Column(Boolean, nullable=False, server_default=text('1'), default=True)
    # Weak reference: editing/deleting the rule never touches generated slots
    rule_id = Column(ForeignKey('availability_rules.id', ondelete='SET NULL'))
    reservation_id = Column(ForeignKey('reservations.id'), unique=True)

    rule = relationship('AvailabilityRules', back_populates='slots')
    reservation = relationship('Reservations')


class Patients(Base):
    __tablename__ = 'patients'

    id = Column(Text, primary_key=True)  # user id supplied by the host application
    name = Column(Text, nullable=False)
    email = Column(Text)
