# backend/dealer_scheduling/routes/v1/availability.py
"""
Availability routes - API v1

Read-only views of slot capacity for booking UIs.

Endpoints:
    GET / - Slot instances for one date
    GET /calendar - Day-by-day calendar for a date range
"""

import asyncio
from datetime import date
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...api.dependencies import get_availability_service
from ...core.exceptions import DomainException
from ...domain.calendar_rules import SlotInstance
from ...models.booking import BookingType
from ...schemas.availability import (
    CalendarDayResponse,
    DayAvailabilityResponse,
    SlotInstanceResponse,
)
from ...services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def slot_response(slot: SlotInstance, units: int = 1, blocked: bool = False) -> SlotInstanceResponse:
    return SlotInstanceResponse(
        slot_key=slot.key,
        start_time=slot.start_time,
        end_time=slot.end_time,
        capacity=slot.capacity,
        remaining=slot.remaining,
        available=slot.remaining >= units and not blocked,
    )


@router.get("", response_model=DayAvailabilityResponse)
async def get_availability(
    date_: date = Query(..., alias="date", description="YYYY-MM-DD"),
    booking_type: BookingType = Query(BookingType.TEST_DRIVE),
    vehicle_id: Optional[str] = Query(None, description="Mark slots where this vehicle is taken"),
    units: int = Query(1, ge=1, le=50, description="Capacity units the caller needs"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> DayAvailabilityResponse:
    """
    Slot instances for a date with remaining capacity.

    Holidays return an empty slot list. A slot is ``available`` when it has
    at least ``units`` capacity left and, for test drives, the given vehicle
    is not already booked in it.
    """

    def _resolve() -> DayAvailabilityResponse:
        holiday, slots = availability_service.resolve_day_with_holiday(date_)
        busy: set = set()
        if vehicle_id and booking_type == BookingType.TEST_DRIVE:
            busy = availability_service.vehicle_busy_slot_keys(vehicle_id, date_)
        return DayAvailabilityResponse(
            date=date_,
            booking_type=booking_type.value,
            is_holiday=holiday is not None,
            slots=[slot_response(s, units, blocked=s.key in busy) for s in slots],
        )

    try:
        return await asyncio.to_thread(_resolve)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/calendar", response_model=List[CalendarDayResponse])
async def get_calendar(
    start: date = Query(..., description="First day, YYYY-MM-DD"),
    end: date = Query(..., description="Last day inclusive, YYYY-MM-DD"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[CalendarDayResponse]:
    try:
        days = await asyncio.to_thread(availability_service.resolve_range, start, end)
    except DomainException as e:
        handle_domain_exception(e)
    return [
        CalendarDayResponse(
            date=day.day,
            is_holiday=day.is_holiday,
            holiday_name=day.holiday_name,
            is_weekend=day.is_weekend,
            is_past=day.is_past,
            bookings_count=day.bookings_count,
            slots=[slot_response(s) for s in day.slots],
        )
        for day in days
    ]
