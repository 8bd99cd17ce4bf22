"""Availability response schemas."""

from datetime import date
from typing import List, Optional

from pydantic import Field

from .base import ClockTime, StandardizedModel


class SlotInstanceResponse(StandardizedModel):
    slot_key: str
    start_time: ClockTime
    end_time: ClockTime
    capacity: int
    remaining: int
    available: bool


class DayAvailabilityResponse(StandardizedModel):
    date: date
    booking_type: str
    is_holiday: bool
    slots: List[SlotInstanceResponse] = Field(default_factory=list)


class CalendarDayResponse(StandardizedModel):
    date: date
    is_holiday: bool
    holiday_name: Optional[str] = None
    is_weekend: bool
    is_past: bool
    bookings_count: int
    slots: List[SlotInstanceResponse] = Field(default_factory=list)
