# backend/agenda/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

import datetime as dt
from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator


class SlotRead(BaseModel):
    """A single slot, with its local wall-clock view."""
    id: int
    starts_at: dt.datetime = Field(description="UTC instant")
    local_start: dt.datetime = Field(description="Same instant at the local offset")
    time: str  # "HH:MM" local
    period: Literal["morning", "afternoon"]
    available: bool
    rule_id: Optional[int] = None
    reservation_id: Optional[int] = None

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """Slots of one local day."""
    date: dt.date
    weekday: int = Field(description="0 = Sunday")
    slots: list[SlotRead]


class WeekdaysResponse(BaseModel):
    weekdays: list[int]


class NextDateResponse(BaseModel):
    weekday: int
    date: dt.date


class SlotsGenerateRequest(BaseModel):
    """Either a number of days from today, or a single date."""
    days: Optional[int] = Field(None, ge=1)
    date: Optional[dt.date] = None

    @model_validator(mode="after")
    def one_target(self):
        if (self.days is None) == (self.date is None):
            raise ValueError("Provide exactly one of days or date")
        return self


class SlotsGenerateResponse(BaseModel):
    start_date: dt.date
    days_requested: int
    days_with_slots: int
    slots_created: int
    slots_total: int
    failed_days: list[dt.date] = []
