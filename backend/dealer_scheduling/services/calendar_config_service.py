# backend/dealer_scheduling/services/calendar_config_service.py
"""
Calendar Configuration Service

Administrative management of slot templates and holidays. Templates are
soft-disabled rather than deleted because bookings keep referring to them
by slot key.
"""

from __future__ import annotations

from datetime import date, time
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictException, NotFoundException, ValidationException
from ..models.calendar import Holiday, TimeSlot
from ..repositories.factory import RepositoryFactory
from ..schemas.calendar import HolidayCreate, TimeSlotCreate, TimeSlotUpdate
from .availability_service import business_today
from .base import BaseService

if TYPE_CHECKING:
    from ..repositories.booking_repository import BookingRepository
    from ..repositories.calendar_repository import CalendarRepository

logger = logging.getLogger(__name__)

# Monday to Friday, 09:00-17:00 hourly with no 13:00 slot; the 12:00 slot takes fewer bookings.
DEFAULT_WEEKDAYS = (1, 2, 3, 4, 5)
DEFAULT_HOURS = (9, 10, 11, 12, 14, 15, 16)
DEFAULT_CAPACITY = 3
LUNCH_HOUR_CAPACITY = 2

# (month, day, name, description); year is irrelevant for recurring holidays.
DEFAULT_RECURRING_HOLIDAYS = (
    (1, 1, "New Year's Day", "Start of the new year"),
    (1, 24, "Police Day", None),
    (4, 25, "Sinai Liberation Day", None),
    (5, 1, "Labour Day", None),
    (7, 23, "Revolution Day", None),
    (10, 6, "Armed Forces Day", None),
    (12, 25, "Christmas Day", None),
)


class CalendarConfigService(BaseService):
    def __init__(
        self,
        db: Session,
        calendar_repository: Optional["CalendarRepository"] = None,
        booking_repository: Optional["BookingRepository"] = None,
    ):
        super().__init__(db)
        self.calendar_repository = (
            calendar_repository or RepositoryFactory.create_calendar_repository(db)
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )

    # Time slots

    @BaseService.measure_operation("list_time_slots")
    def list_time_slots(
        self, day_of_week: Optional[int] = None, include_inactive: bool = False
    ) -> List[TimeSlot]:
        return self.calendar_repository.list_templates(day_of_week, include_inactive)

    def get_time_slot(self, slot_id: str) -> TimeSlot:
        template = self.calendar_repository.get_by_id(slot_id)
        if template is None:
            raise NotFoundException(
                "Time slot not found", code="TIME_SLOT_NOT_FOUND", details={"id": slot_id}
            )
        return template

    @BaseService.measure_operation("create_time_slot")
    def create_time_slot(self, data: TimeSlotCreate) -> TimeSlot:
        self.log_operation(
            "create_time_slot", day_of_week=data.day_of_week, start_time=str(data.start_time)
        )
        with self.transaction():
            self._ensure_unique(data.day_of_week, data.start_time, data.end_time)
            return self.calendar_repository.create(**data.model_dump())

    @BaseService.measure_operation("update_time_slot")
    def update_time_slot(self, slot_id: str, data: TimeSlotUpdate) -> TimeSlot:
        """
        Apply a partial update.

        Capacity and the active flag may change at any time; later
        admissions see the new values. Moving a template to another day or
        other hours is refused while live bookings reference it.
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        self.log_operation("update_time_slot", slot_id=slot_id, fields=sorted(changes))
        with self.transaction():
            template = self.get_time_slot(slot_id)
            day = changes.get("day_of_week", template.day_of_week)
            start = changes.get("start_time", template.start_time)
            end = changes.get("end_time", template.end_time)
            if start >= end:
                raise ValidationException(
                    "start_time must be before end_time",
                    code="INVALID_TIME_RANGE",
                    details={"start_time": str(start), "end_time": str(end)},
                )

            moved = (day, start, end) != (template.day_of_week, template.start_time, template.end_time)
            if moved:
                in_use = self.booking_repository.count_templates_in_use(slot_id, business_today())
                if in_use:
                    raise ConflictException(
                        "Time slot has upcoming bookings and cannot be moved",
                        code="TIME_SLOT_IN_USE",
                        details={"id": slot_id, "bookings": in_use},
                    )
                self._ensure_unique(day, start, end, exclude_id=slot_id)

            updated = self.calendar_repository.update(slot_id, **changes)
        return updated

    @BaseService.measure_operation("deactivate_time_slot")
    def deactivate_time_slot(self, slot_id: str) -> TimeSlot:
        """Stop offering a template. Existing bookings are untouched."""
        self.log_operation("deactivate_time_slot", slot_id=slot_id)
        with self.transaction():
            template = self.get_time_slot(slot_id)
            template.is_active = False
        return template

    def _ensure_unique(
        self, day_of_week: int, start: time, end: time, exclude_id: Optional[str] = None
    ) -> None:
        duplicate = self.calendar_repository.find_duplicate_template(
            day_of_week, start, end, exclude_id=exclude_id
        )
        if duplicate is not None:
            raise ConflictException(
                "A time slot with the same day and hours already exists",
                code="TIME_SLOT_EXISTS",
                details={"existing_id": duplicate.id},
            )

    # Holidays

    @BaseService.measure_operation("list_holidays")
    def list_holidays(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Holiday]:
        if start and end and end < start:
            raise ValidationException("End date must not be before start date", code="INVALID_DATE_RANGE")
        return self.calendar_repository.list_holidays(start, end)

    @BaseService.measure_operation("create_holiday")
    def create_holiday(self, data: HolidayCreate) -> Holiday:
        self.log_operation(
            "create_holiday", date=data.date.isoformat(), is_recurring=data.is_recurring
        )
        with self.transaction():
            for existing in self.calendar_repository.get_holidays_matching(data.date):
                same_rule = existing.is_recurring == data.is_recurring and (
                    data.is_recurring or existing.date == data.date
                )
                if same_rule:
                    raise ConflictException(
                        "A holiday already covers this date",
                        code="HOLIDAY_EXISTS",
                        details={"existing_id": existing.id},
                    )
            return self.calendar_repository.create_holiday(**data.model_dump())

    @BaseService.measure_operation("delete_holiday")
    def delete_holiday(self, holiday_id: str) -> None:
        self.log_operation("delete_holiday", holiday_id=holiday_id)
        with self.transaction():
            holiday = self.calendar_repository.get_holiday(holiday_id)
            if holiday is None:
                raise NotFoundException(
                    "Holiday not found", code="HOLIDAY_NOT_FOUND", details={"id": holiday_id}
                )
            self.calendar_repository.delete_holiday(holiday)

    # Seeding

    @BaseService.measure_operation("seed_default_calendar")
    def seed_default_calendar(self, year: Optional[int] = None) -> Dict[str, int]:
        """
        Install the default working week and recurring holidays.

        Each part is only seeded when its table is empty, so running the
        seed twice is harmless.
        """
        year = year or business_today().year
        created = {"time_slots": 0, "holidays": 0}
        with self.transaction():
            if not self.calendar_repository.list_templates(include_inactive=True):
                for dow in DEFAULT_WEEKDAYS:
                    for hour in DEFAULT_HOURS:
                        self.calendar_repository.create(
                            day_of_week=dow,
                            start_time=time(hour, 0),
                            end_time=time(hour + 1, 0),
                            max_bookings=LUNCH_HOUR_CAPACITY if hour == 12 else DEFAULT_CAPACITY,
                            is_active=True,
                        )
                        created["time_slots"] += 1
            if not self.calendar_repository.get_all_holidays():
                for month, day, name, description in DEFAULT_RECURRING_HOLIDAYS:
                    self.calendar_repository.create_holiday(
                        date=date(year, month, day),
                        name=name,
                        description=description,
                        is_recurring=True,
                    )
                    created["holidays"] += 1
        self.log_operation("seed_default_calendar", **created)
        return created
