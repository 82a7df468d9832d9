# backend/agenda/schemas/reservations.py

from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

# Only "confirmed" is written here; the others belong to flows outside this service
ReservationStatus = Literal["pending", "confirmed", "cancelled"]


class ReservationCreate(BaseModel):
    slot_id: int
    user_id: str = Field(min_length=1)
    user_name: str = Field(min_length=1)

    model_config = {"from_attributes": True}


class ReservationRead(BaseModel):
    id: int

    slot_starts_at: datetime
    user_id: str
    user_name: str
    status: ReservationStatus

    created_at: datetime

    model_config = {"from_attributes": True}
