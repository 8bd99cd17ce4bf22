"""
Booking request and response schemas.

The request model parses and shapes input only. Business validation (vehicle
required for test drives, service type rules, dates and slots) happens in
admission so that every rejection carries the same error code set.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from ..models.booking import BookingType
from .base import (
    ClockTime,
    Money,
    StandardizedModel,
    StrictRequestModel,
    ensure_date_only,
)


class CustomerInfo(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=3, max_length=50)
    license_number: Optional[str] = Field(None, max_length=100)

    @field_validator("name", "phone")
    @classmethod
    def _strip(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class BookingRequest(StrictRequestModel):
    """Request to admit a booking into a slot instance."""

    booking_type: BookingType
    date: date
    time_slot_key: str = Field(..., description="Slot key of the chosen slot instance")
    vehicle_id: Optional[str] = Field(None, description="Required for TEST_DRIVE")
    service_type_ids: List[str] = Field(
        default_factory=list, description="One capacity unit per service type (SERVICE only)"
    )
    customer_info: CustomerInfo
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "date")

    @field_validator("time_slot_key")
    @classmethod
    def _normalize_slot_key(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("notes")
    @classmethod
    def _clean_notes(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class BookingResponse(StandardizedModel):
    id: str
    booking_type: str
    booking_date: date
    time_slot_key: str
    start_time: ClockTime
    end_time: ClockTime
    vehicle_id: Optional[str] = None
    service_type_id: Optional[str] = None
    customer_id: str
    status: str
    price: Money
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class AdmissionResponse(StandardizedModel):
    bookings: List[BookingResponse]
    total_price: Money


class AlternativeSlotResponse(StandardizedModel):
    slot_key: str
    start_time: ClockTime
    end_time: ClockTime
    remaining: int


class AlternativeDayResponse(StandardizedModel):
    date: date
    slots: List[AlternativeSlotResponse]


class RejectionResponse(StandardizedModel):
    """Body returned when admission declines a request."""

    code: str
    message: str
    details: dict = Field(default_factory=dict)
    alternatives: List[AlternativeDayResponse] = Field(default_factory=list)
