# backend/agenda/routers/slots.py
"""
Slots API endpoints.

Booking UI:
  GET  /slots/weekdays  - weekdays with active availability
  GET  /slots/next-date - next date (today inclusive) for a weekday
  GET  /slots/day       - slots of a local day, optional period filter
Admin:
  POST /slots/generate  - expand rules into slots (N days or one date)
"""

from datetime import date
from typing import Literal
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Slots
from ..schemas.slots import (
    NextDateResponse,
    SlotRead,
    SlotsDayResponse,
    SlotsGenerateRequest,
    SlotsGenerateResponse,
    WeekdaysResponse,
)
from ..services.slots import (
    BookingConfig,
    generate_upcoming_slots,
    list_available_weekdays,
    list_slots_by_date,
    slot_local_time,
)
from ..services.slots.calendar import local_today, next_occurrence_of_weekday, period_of, weekday_of


router = APIRouter(prefix="/slots", tags=["slots"])


def _slot_read(slot: Slots, config: BookingConfig) -> SlotRead:
    local = slot_local_time(slot, config)
    return SlotRead(
        id=slot.id,
        starts_at=slot.starts_at,
        local_start=local,
        time=local.strftime("%H:%M"),
        period=period_of(local),
        available=slot.available,
        rule_id=slot.rule_id,
        reservation_id=slot.reservation_id,
    )


@router.get("/weekdays", response_model=WeekdaysResponse)
def get_available_weekdays(db: Session = Depends(get_db)):
    """Weekdays (0 = Sunday) with at least one active rule."""
    return WeekdaysResponse(weekdays=list_available_weekdays(db))


@router.get("/next-date", response_model=NextDateResponse)
def get_next_date(
    request: Request,
    weekday: int = Query(..., ge=0, le=6),
):
    """Next date falling on weekday, today inclusive."""
    config: BookingConfig = request.app.state.booking_config
    return NextDateResponse(
        weekday=weekday,
        date=next_occurrence_of_weekday(local_today(config), weekday),
    )


@router.get("/day", response_model=SlotsDayResponse)
def get_slots_day(
    request: Request,
    target_date: date = Query(..., alias="date"),
    period: Literal["morning", "afternoon"] | None = None,
    only_available: bool = False,
    db: Session = Depends(get_db),
):
    """Slots of a local day, ordered by start time."""
    config: BookingConfig = request.app.state.booking_config
    slots = list_slots_by_date(db, target_date, period=period, only_available=only_available, config=config)

    return SlotsDayResponse(
        date=target_date,
        weekday=weekday_of(target_date),
        slots=[_slot_read(s, config) for s in slots],
    )


@router.post("/generate", response_model=SlotsGenerateResponse)
def generate_slots(
    data: SlotsGenerateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Generate slots (idempotent: existing slots are kept, never duplicated)."""
    config: BookingConfig = request.app.state.booking_config
    locker = request.app.state.generation_locker

    if data.date is not None:
        summary = generate_upcoming_slots(db, 1, today=data.date, config=config, locker=locker)
    else:
        summary = generate_upcoming_slots(db, data.days, config=config, locker=locker)

    return SlotsGenerateResponse(
        start_date=summary.start_date,
        days_requested=summary.days_requested,
        days_with_slots=summary.days_with_slots,
        slots_created=summary.slots_created,
        slots_total=summary.slots_total,
        failed_days=summary.failed_days,
    )
