# backend/dealer_scheduling/services/admission_service.py
"""
Booking Admission Service

Decides whether a booking request may consume capacity in a slot instance
and, when it may, records it.

Admission runs in three phases:

1. Structural validation with no lock held: date window, holidays, slot
   template, booking type rules, referenced vehicle and service types.
2. The serialized section for ``(date, slot_key)``: holidays and capacity
   are re-read, the vehicle conflict is checked, all rows are inserted and the
   transaction commits before the lock is released. Two requests for the
   same slot instance can never both see the same remaining capacity.
3. After commit, notices are handed to the notification dispatcher.

Expected refusals come back as ``AdmissionRejection`` values. Only
infrastructure failures raise, as ``SchedulingUnavailableException``, and
in that case nothing was written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    NotFoundException,
    RepositoryException,
    SchedulingUnavailableException,
)
from ..core.slot_lock import SlotLockRegistry, slot_lock_registry
from ..domain.calendar_rules import (
    AdmissionOutcome,
    AdmissionRejection,
    AdmissionResult,
    RejectionCode,
    day_of_week,
    is_valid_slot_key,
    required_units,
)
from ..models.booking import Booking, BookingType
from ..models.calendar import TimeSlot
from ..models.catalog import ServiceType, Vehicle, VehicleStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingRequest
from .availability_service import AvailabilityService, business_today
from .base import BaseService

if TYPE_CHECKING:
    from ..repositories.booking_repository import BookingRepository
    from ..repositories.catalog_repository import CatalogRepository
    from ..repositories.slot_lock_repository import SlotLockRepository
    from .notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

# Rejections worth suggesting another slot for.
_ALTERNATIVE_CODES = {
    RejectionCode.SLOT_FULL,
    RejectionCode.VEHICLE_ALREADY_BOOKED,
    RejectionCode.INVALID_DATE,
}


@dataclass
class _ValidatedRequest:
    template: TimeSlot
    units: int
    vehicle: Optional[Vehicle] = None
    service_types: List[ServiceType] = field(default_factory=list)


def _reject(code: RejectionCode, message: str, **details: Any) -> AdmissionRejection:
    return AdmissionRejection(code=code, message=message, details=details)


class BookingAdmissionService(BaseService):
    """Booking Admission Controller."""

    def __init__(
        self,
        db: Session,
        availability_service: Optional[AvailabilityService] = None,
        booking_repository: Optional["BookingRepository"] = None,
        catalog_repository: Optional["CatalogRepository"] = None,
        slot_lock_repository: Optional["SlotLockRepository"] = None,
        dispatcher: Optional["NotificationDispatcher"] = None,
        lock_registry: Optional[SlotLockRegistry] = None,
        today: Optional[Callable[[], date]] = None,
        initial_status: Optional[str] = None,
    ):
        super().__init__(db)
        self.today = today or business_today
        self.availability_service = availability_service or AvailabilityService(
            db, today=self.today
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )
        self.slot_lock_repository = (
            slot_lock_repository or RepositoryFactory.create_slot_lock_repository(db)
        )
        self.lock_registry = lock_registry or slot_lock_registry
        self.initial_status = initial_status or settings.initial_booking_status
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> "NotificationDispatcher":
        if self._dispatcher is None:
            from .notification_service import get_notification_dispatcher

            self._dispatcher = get_notification_dispatcher()
        return self._dispatcher

    @BaseService.measure_operation("admit")
    def admit(self, request: BookingRequest) -> AdmissionOutcome:
        """
        Admit a booking request or explain why not.

        Returns:
            AdmissionResult with the inserted bookings, or AdmissionRejection

        Raises:
            SchedulingUnavailableException: store failure or slot lock timeout;
                nothing was written and the request may be retried
        """
        booking_type = request.booking_type.value
        self.log_operation(
            "admit",
            booking_type=booking_type,
            date=request.date.isoformat(),
            slot_key=request.time_slot_key,
        )

        try:
            outcome = self._admit(request)
        except SchedulingUnavailableException as exc:
            prometheus_metrics.record_admission(booking_type, exc.code)
            raise
        except (RepositoryException, SQLAlchemyError) as exc:
            self.db.rollback()
            prometheus_metrics.record_admission(booking_type, "SERVICE_UNAVAILABLE")
            self.logger.error(f"Admission aborted by data access failure: {str(exc)}")
            raise SchedulingUnavailableException() from exc

        if isinstance(outcome, AdmissionRejection):
            prometheus_metrics.record_admission(booking_type, outcome.code.value)
            self.logger.info(
                f"Admission rejected: {outcome.code.value}",
                extra={
                    "code": outcome.code.value,
                    "date": request.date.isoformat(),
                    "slot_key": request.time_slot_key,
                },
            )
            return self._with_alternatives(outcome, request)

        prometheus_metrics.record_admission(booking_type, "ADMITTED")
        self.logger.info(
            f"Admitted {len(outcome.bookings)} booking(s)",
            extra={
                "booking_ids": [b.id for b in outcome.bookings],
                "date": request.date.isoformat(),
                "slot_key": request.time_slot_key,
            },
        )
        self._handle_post_admission_tasks(outcome.bookings)
        return outcome

    def _admit(self, request: BookingRequest) -> AdmissionOutcome:
        validated = self._validate(request)
        if isinstance(validated, AdmissionRejection):
            return validated

        slot_date = request.date
        slot_key = request.time_slot_key
        timeout = settings.slot_lock_timeout_seconds

        with self.lock_registry.hold(slot_date, slot_key, timeout):
            with self.transaction(failure=SchedulingUnavailableException):
                if settings.slot_row_lock_enabled:
                    self.slot_lock_repository.lock_slot(slot_date, slot_key, timeout)

                # A holiday added since validation closes the day outright.
                holiday = self.availability_service.holiday_on(slot_date)
                if holiday is not None:
                    return _reject(
                        RejectionCode.INVALID_DATE,
                        "The dealership is closed on the selected date",
                        date=slot_date.isoformat(),
                        holiday=holiday.name,
                    )

                capacity = self.availability_service.check_capacity(slot_date, slot_key)
                if capacity.capacity <= 0:
                    # Template or calendar changed since validation.
                    return _reject(
                        RejectionCode.INVALID_SLOT,
                        "The selected time slot is no longer offered",
                        slot_key=slot_key,
                    )
                if capacity.remaining < validated.units:
                    return _reject(
                        RejectionCode.SLOT_FULL,
                        "The selected time slot does not have enough capacity left",
                        slot_key=slot_key,
                        remaining=capacity.remaining,
                        required=validated.units,
                    )

                if request.booking_type == BookingType.TEST_DRIVE and (
                    self.booking_repository.has_vehicle_conflict(
                        request.vehicle_id, slot_date, slot_key
                    )
                ):
                    return _reject(
                        RejectionCode.VEHICLE_ALREADY_BOOKED,
                        "This vehicle is already booked for a test drive in the selected slot",
                        vehicle_id=request.vehicle_id,
                        slot_key=slot_key,
                    )

                bookings = self._insert(request, validated)
                total_price = sum((Decimal(b.price) for b in bookings), Decimal("0"))

        return AdmissionResult(bookings=bookings, total_price=total_price)

    def _validate(self, request: BookingRequest) -> _ValidatedRequest | AdmissionRejection:
        """Checks that need no lock. Order decides which code a bad request gets."""
        today = self.today()
        slot_date = request.date

        if slot_date < today:
            return _reject(
                RejectionCode.INVALID_DATE,
                "Bookings cannot be made for past dates",
                date=slot_date.isoformat(),
            )
        last_bookable = today + timedelta(days=settings.max_advance_booking_days)
        if slot_date > last_bookable:
            return _reject(
                RejectionCode.INVALID_DATE,
                f"Bookings can be made at most {settings.max_advance_booking_days} days ahead",
                date=slot_date.isoformat(),
                last_bookable=last_bookable.isoformat(),
            )
        holiday = self.availability_service.holiday_on(slot_date)
        if holiday is not None:
            return _reject(
                RejectionCode.INVALID_DATE,
                "The dealership is closed on the selected date",
                date=slot_date.isoformat(),
                holiday=holiday.name,
            )

        slot_key = request.time_slot_key
        if not is_valid_slot_key(slot_key):
            return _reject(RejectionCode.INVALID_SLOT, "Malformed time slot key", slot_key=slot_key)
        template = self.availability_service.get_template(slot_key)
        if template is None or not template.is_active or int(template.max_bookings) <= 0:
            return _reject(
                RejectionCode.INVALID_SLOT, "The selected time slot does not exist", slot_key=slot_key
            )
        if template.day_of_week != day_of_week(slot_date):
            return _reject(
                RejectionCode.INVALID_SLOT,
                "The selected time slot is not offered on this day",
                slot_key=slot_key,
                date=slot_date.isoformat(),
            )

        if request.booking_type == BookingType.TEST_DRIVE:
            return self._validate_test_drive(request, template)
        return self._validate_service(request, template)

    def _validate_test_drive(
        self, request: BookingRequest, template: TimeSlot
    ) -> _ValidatedRequest | AdmissionRejection:
        if not request.vehicle_id:
            return _reject(RejectionCode.VALIDATION_ERROR, "A vehicle is required for a test drive")
        if request.service_type_ids:
            return _reject(
                RejectionCode.VALIDATION_ERROR, "Test drive bookings cannot include service types"
            )
        vehicle = self.catalog_repository.get_vehicle(request.vehicle_id)
        if vehicle is None:
            return _reject(
                RejectionCode.VALIDATION_ERROR, "Vehicle not found", vehicle_id=request.vehicle_id
            )
        if vehicle.status != VehicleStatus.AVAILABLE.value:
            return _reject(
                RejectionCode.VALIDATION_ERROR,
                "Vehicle is not available for test drives",
                vehicle_id=vehicle.id,
                vehicle_status=vehicle.status,
            )
        return _ValidatedRequest(template=template, units=1, vehicle=vehicle)

    def _validate_service(
        self, request: BookingRequest, template: TimeSlot
    ) -> _ValidatedRequest | AdmissionRejection:
        ids = request.service_type_ids
        if not ids:
            return _reject(
                RejectionCode.VALIDATION_ERROR, "At least one service type must be selected"
            )
        if len(set(ids)) != len(ids):
            return _reject(
                RejectionCode.VALIDATION_ERROR,
                "Service types must not be repeated",
                service_type_ids=list(ids),
            )
        service_types = self.catalog_repository.get_service_types(ids)
        found = {st.id for st in service_types if st.is_active}
        missing = [sid for sid in ids if sid not in found]
        if missing:
            return _reject(
                RejectionCode.VALIDATION_ERROR,
                "Unknown or inactive service types",
                service_type_ids=missing,
            )

        vehicle = None
        if request.vehicle_id:
            vehicle = self.catalog_repository.get_vehicle(request.vehicle_id)
            if vehicle is None:
                return _reject(
                    RejectionCode.VALIDATION_ERROR,
                    "Vehicle not found",
                    vehicle_id=request.vehicle_id,
                )

        return _ValidatedRequest(
            template=template,
            units=required_units(BookingType.SERVICE.value, ids),
            vehicle=vehicle,
            service_types=service_types,
        )

    def _insert(self, request: BookingRequest, validated: _ValidatedRequest) -> List[Booking]:
        """Stage every row of the admission. Runs inside the slot transaction."""
        info = request.customer_info
        customer = self.catalog_repository.find_or_create_customer(
            name=info.name,
            email=str(info.email),
            phone=info.phone,
            license_number=info.license_number,
        )
        common: Dict[str, Any] = {
            "booking_type": request.booking_type.value,
            "booking_date": request.date,
            "time_slot_key": request.time_slot_key,
            "start_time": validated.template.start_time,
            "end_time": validated.template.end_time,
            "vehicle": validated.vehicle,
            "customer": customer,
            "status": self.initial_status,
            "notes": request.notes,
        }
        if request.booking_type == BookingType.TEST_DRIVE:
            rows = [{**common, "price": Decimal("0")}]
        else:
            rows = [
                {**common, "service_type": st, "price": Decimal(st.price or 0)}
                for st in validated.service_types
            ]
        return self.booking_repository.insert_bookings(rows)

    def _with_alternatives(
        self, rejection: AdmissionRejection, request: BookingRequest
    ) -> AdmissionRejection:
        if rejection.code not in _ALTERNATIVE_CODES or settings.max_alternatives <= 0:
            return rejection
        try:
            alternatives = self.availability_service.find_alternatives(
                request.date,
                required_units(request.booking_type.value, request.service_type_ids),
                vehicle_id=(
                    request.vehicle_id if request.booking_type == BookingType.TEST_DRIVE else None
                ),
                exclude_slot_key=request.time_slot_key,
            )
        except (RepositoryException, SQLAlchemyError) as exc:
            self.logger.warning(f"Could not compute alternative slots: {str(exc)}")
            return rejection
        return AdmissionRejection(
            code=rejection.code,
            message=rejection.message,
            details=rejection.details,
            alternatives=alternatives,
        )

    def _handle_post_admission_tasks(self, bookings: List[Booking]) -> None:
        """Side effects after commit. Failures here never affect the admission."""
        try:
            self.dispatcher.dispatch(bookings)
        except Exception as e:
            self.logger.error(
                f"Failed to dispatch notifications for admission: {str(e)}",
                extra={"booking_ids": [b.id for b in bookings]},
            )

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_booking_with_details(booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking
