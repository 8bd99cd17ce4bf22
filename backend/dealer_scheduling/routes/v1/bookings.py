# backend/dealer_scheduling/routes/v1/bookings.py
"""
Booking routes - API v1

Endpoints:
    POST / - Admit a booking request
    GET /{booking_id} - Booking details
"""

import asyncio
import logging
from typing import Any, Dict, NoReturn, Union

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.params import Path
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from ...api.dependencies import get_db, get_dispatcher, get_session_factory
from ...core.exceptions import DomainException
from ...domain.calendar_rules import AdmissionRejection, AdmissionResult
from ...schemas.booking import (
    AdmissionResponse,
    AlternativeDayResponse,
    AlternativeSlotResponse,
    BookingRequest,
    BookingResponse,
    RejectionResponse,
)
from ...services.admission_service import BookingAdmissionService
from ...services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _rejection_response(rejection: AdmissionRejection) -> RejectionResponse:
    return RejectionResponse(
        code=rejection.code.value,
        message=rejection.message,
        details=rejection.details,
        alternatives=[
            AlternativeDayResponse(
                date=alt.day,
                slots=[
                    AlternativeSlotResponse(
                        slot_key=s.key,
                        start_time=s.start_time,
                        end_time=s.end_time,
                        remaining=s.remaining,
                    )
                    for s in alt.slots
                ],
            )
            for alt in rejection.alternatives
        ],
    )


def run_admission(
    session_factory: sessionmaker,
    request: BookingRequest,
    dispatcher: NotificationDispatcher,
) -> Union[AdmissionResponse, AdmissionRejection]:
    """
    Admit on a private session.

    The response is built before the session closes so no lazy loads
    happen afterwards.
    """
    db: Session = session_factory()
    try:
        service = BookingAdmissionService(db, dispatcher=dispatcher)
        outcome = service.admit(request)
        if isinstance(outcome, AdmissionResult):
            return AdmissionResponse(
                bookings=[BookingResponse.model_validate(b) for b in outcome.bookings],
                total_price=outcome.total_price,
            )
        return outcome
    finally:
        db.close()


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post(
    "",
    response_model=AdmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": RejectionResponse, "description": "Slot full or vehicle already booked"},
        422: {"model": RejectionResponse, "description": "Invalid date, slot or request"},
        503: {"description": "Scheduling temporarily unavailable; retry"},
    },
)
async def create_booking(
    booking_request: BookingRequest,
    session_factory: sessionmaker = Depends(get_session_factory),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Any:
    """
    Admit a test drive or service booking.

    Admission runs in a worker thread and is shielded from request
    cancellation: once started it finishes and commits even if the client
    goes away.
    """
    try:
        outcome = await asyncio.shield(
            asyncio.to_thread(run_admission, session_factory, booking_request, dispatcher)
        )
    except DomainException as e:
        handle_domain_exception(e)

    if isinstance(outcome, AdmissionRejection):
        body: Dict[str, Any] = jsonable_encoder(_rejection_response(outcome))
        return JSONResponse(body, status_code=outcome.code.http_status)
    return outcome


# ============================================================================
# SECTION 2: Routes with path parameters
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_details(
    booking_id: str = Path(
        ...,
        description="Booking ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    db: Session = Depends(get_db),
) -> BookingResponse:
    def _load() -> BookingResponse:
        booking = BookingAdmissionService(db).get_booking(booking_id)
        return BookingResponse.model_validate(booking)

    try:
        return await asyncio.to_thread(_load)
    except DomainException as e:
        handle_domain_exception(e)
