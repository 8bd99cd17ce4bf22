# backend/dealer_scheduling/routes/v1/admin_calendar.py
"""
Calendar administration routes - API v1

Endpoints:
    GET /time-slots - List slot templates
    POST /time-slots - Create a slot template
    PATCH /time-slots/{slot_id} - Update a slot template
    DELETE /time-slots/{slot_id} - Deactivate a slot template
    GET /holidays - List holidays
    POST /holidays - Create a holiday
    DELETE /holidays/{holiday_id} - Remove a holiday
"""

import asyncio
from datetime import date
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.params import Path

from ...api.dependencies import get_calendar_config_service
from ...core.exceptions import DomainException
from ...schemas.calendar import (
    HolidayCreate,
    HolidayResponse,
    TimeSlotCreate,
    TimeSlotResponse,
    TimeSlotUpdate,
)
from ...services.calendar_config_service import CalendarConfigService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-calendar-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


# ============================================================================
# SECTION 1: Time slot templates
# ============================================================================


@router.get("/time-slots", response_model=List[TimeSlotResponse])
async def list_time_slots(
    day_of_week: Optional[int] = Query(None, ge=0, le=6, description="0 = Sunday ... 6 = Saturday"),
    include_inactive: bool = Query(False),
    service: CalendarConfigService = Depends(get_calendar_config_service),
) -> List[TimeSlotResponse]:
    try:
        templates = await asyncio.to_thread(service.list_time_slots, day_of_week, include_inactive)
    except DomainException as e:
        handle_domain_exception(e)
    return [TimeSlotResponse.model_validate(t) for t in templates]


@router.post("/time-slots", response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
async def create_time_slot(
    payload: TimeSlotCreate,
    service: CalendarConfigService = Depends(get_calendar_config_service),
) -> TimeSlotResponse:
    try:
        template = await asyncio.to_thread(service.create_time_slot, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return TimeSlotResponse.model_validate(template)


@router.patch("/time-slots/{slot_id}", response_model=TimeSlotResponse)
async def update_time_slot(
    payload: TimeSlotUpdate,
    slot_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    service: CalendarConfigService = Depends(get_calendar_config_service),
) -> TimeSlotResponse:
    try:
        template = await asyncio.to_thread(service.update_time_slot, slot_id, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return TimeSlotResponse.model_validate(template)


@router.delete("/time-slots/{slot_id}", response_model=TimeSlotResponse)
async def deactivate_time_slot(
    slot_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    service: CalendarConfigService = Depends(get_calendar_config_service),
) -> TimeSlotResponse:
    """Soft delete: the template stops being offered, bookings keep their slot key."""
    try:
        template = await asyncio.to_thread(service.deactivate_time_slot, slot_id)
    except DomainException as e:
        handle_domain_exception(e)
    return TimeSlotResponse.model_validate(template)


# ============================================================================
# SECTION 2: Holidays
# ============================================================================


@router.get("/holidays", response_model=List[HolidayResponse])
async def list_holidays(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    service: CalendarConfigService = Depends(get_calendar_config_service),
) -> List[HolidayResponse]:
    try:
        holidays = await asyncio.to_thread(service.list_holidays, start, end)
    except DomainException as e:
        handle_domain_exception(e)
    return [HolidayResponse.model_validate(h) for h in holidays]


@router.post("/holidays", response_model=HolidayResponse, status_code=status.HTTP_201_CREATED)
async def create_holiday(
    payload: HolidayCreate,
    service: CalendarConfigService = Depends(get_calendar_config_service),
) -> HolidayResponse:
    try:
        holiday = await asyncio.to_thread(service.create_holiday, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return HolidayResponse.model_validate(holiday)


@router.delete("/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_holiday(
    holiday_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    service: CalendarConfigService = Depends(get_calendar_config_service),
) -> Response:
    try:
        await asyncio.to_thread(service.delete_holiday, holiday_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
