"""Calendar administration schemas."""

from datetime import date, datetime, time
from typing import Optional

from pydantic import Field, field_validator, model_validator

from .base import (
    ClockTime,
    StandardizedModel,
    StrictRequestModel,
    ensure_date_only,
    parse_clock_time,
)


class TimeSlotCreate(StrictRequestModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: time
    end_time: time
    max_bookings: int = Field(..., ge=0, le=1000)
    is_active: bool = True

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_clock_time(v)

    @model_validator(mode="after")
    def _check_order(self) -> "TimeSlotCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class TimeSlotUpdate(StrictRequestModel):
    """Partial update; time order is checked against the stored row in the service."""

    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    max_bookings: Optional[int] = Field(None, ge=0, le=1000)
    is_active: Optional[bool] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_clock_time(v)

    @model_validator(mode="before")
    @classmethod
    def _reject_nulls(cls, data: object) -> object:
        # Omit a field to leave it unchanged; null is never a valid value.
        if isinstance(data, dict):
            nulls = sorted(k for k, v in data.items() if v is None)
            if nulls:
                raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return data


class TimeSlotResponse(StandardizedModel):
    id: str
    day_of_week: int
    start_time: ClockTime
    end_time: ClockTime
    max_bookings: int
    is_active: bool


class HolidayCreate(StrictRequestModel):
    date: date
    name: str = Field(..., min_length=1, max_length=255)
    is_recurring: bool = False
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "date")


class HolidayResponse(StandardizedModel):
    id: str
    date: date
    name: str
    is_recurring: bool
    description: Optional[str] = None
    created_at: Optional[datetime] = None
