# backend/agenda/schemas/availability_rules.py

import re
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")

Period = Literal["morning", "afternoon"]


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is not None and not TIME_PATTERN.match(v):
        raise ValueError("Time must be in HH:MM format")
    return v


class AvailabilityRuleCreate(BaseModel):
    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday … 6 = Saturday")
    period: Period
    start_time: str = Field(description="Local time HH:MM")
    end_time: str = Field(description="Local time HH:MM")
    step_minutes: int = Field(gt=0)
    active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _check_time(v)

    model_config = {"from_attributes": True}


class AvailabilityRuleUpdate(BaseModel):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    period: Optional[Period] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    step_minutes: Optional[int] = Field(None, gt=0)
    active: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)

    @model_validator(mode="after")
    def no_explicit_nulls(self):
        # Omitted = unchanged; null is not a value for any rule column
        nulls = sorted(f for f in self.model_fields_set if getattr(self, f) is None)
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self

    model_config = {"from_attributes": True}


class AvailabilityRuleRead(BaseModel):
    id: int

    day_of_week: int
    period: str
    start_time: str
    end_time: str
    step_minutes: int
    active: bool

    model_config = {"from_attributes": True}
