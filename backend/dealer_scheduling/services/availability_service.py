# backend/dealer_scheduling/services/availability_service.py
"""
Availability Service

Expands weekly slot templates into concrete slot instances for a date and
answers how much capacity each instance has left. Everything here is a
read: no locks are taken and repeated calls against unchanged data return
identical results.

Holidays are absolute. A date matching any holiday rule has no slot
instances and every capacity check on it fails.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ValidationException
from ..domain.calendar_rules import (
    AlternativeDay,
    CalendarDay,
    CapacityCheck,
    HolidayRule,
    SlotInstance,
    day_of_week,
    holiday_rule,
    is_valid_slot_key,
    is_weekend,
    matching_holiday,
)
from ..models.calendar import TimeSlot
from ..repositories.factory import RepositoryFactory
from .base import BaseService

if TYPE_CHECKING:
    from ..repositories.booking_repository import BookingRepository
    from ..repositories.calendar_repository import CalendarRepository

logger = logging.getLogger(__name__)


def business_today() -> date:
    """Current date in the dealership's timezone."""
    return datetime.now(settings.tz).date()


def _instance(template: TimeSlot, booked: int) -> SlotInstance:
    capacity = int(template.max_bookings)
    return SlotInstance(
        key=template.id,
        start_time=template.start_time,
        end_time=template.end_time,
        capacity=capacity,
        remaining=max(0, capacity - booked),
    )


class AvailabilityService(BaseService):
    """Availability Resolver over the calendar configuration and booking counts."""

    def __init__(
        self,
        db: Session,
        calendar_repository: Optional["CalendarRepository"] = None,
        booking_repository: Optional["BookingRepository"] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        super().__init__(db)
        self.calendar_repository = (
            calendar_repository or RepositoryFactory.create_calendar_repository(db)
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.today = today or business_today

    def holiday_on(self, target: date) -> Optional[HolidayRule]:
        """The holiday rule closing ``target``, if any."""
        records = self.calendar_repository.get_holidays_matching(target)
        return matching_holiday((holiday_rule(r) for r in records), target)

    def get_template(self, slot_key: str) -> Optional[TimeSlot]:
        if not is_valid_slot_key(slot_key):
            return None
        return self.calendar_repository.get_by_id(slot_key)

    def vehicle_busy_slot_keys(self, vehicle_id: str, target: date) -> Set[str]:
        """Slot keys on ``target`` where the vehicle already has a live test drive."""
        return {
            key
            for (_day, key) in self.booking_repository.get_vehicle_slot_keys(vehicle_id, target)
        }

    @BaseService.measure_operation("resolve_day")
    def resolve_day(self, target: date) -> List[SlotInstance]:
        """
        Ordered slot instances for ``target``.

        Ordering is by start time with ties broken by slot key. Templates
        with zero capacity are not offered.
        """
        return self.resolve_day_with_holiday(target)[1]

    def resolve_day_with_holiday(
        self, target: date
    ) -> Tuple[Optional[HolidayRule], List[SlotInstance]]:
        """The closing holiday for ``target`` (or None) and its slot instances, from one lookup."""
        holiday = self.holiday_on(target)
        if holiday is not None:
            return holiday, []

        templates = self.calendar_repository.get_active_templates(day_of_week(target))
        counts = self.booking_repository.count_non_terminal_by_slot(target)
        return None, self._instances_for(target, templates, counts)

    @BaseService.measure_operation("check_capacity")
    def check_capacity(self, target: date, slot_key: str) -> CapacityCheck:
        """
        Remaining capacity of one slot instance.

        Unknown, inactive, zero-capacity or wrong-weekday templates and
        holiday dates all report ``ok=False`` with nothing remaining.
        """
        template = self.get_template(slot_key)
        if (
            template is None
            or not template.is_active
            or template.day_of_week != day_of_week(target)
            or int(template.max_bookings) <= 0
        ):
            return CapacityCheck.closed()
        if self.holiday_on(target) is not None:
            return CapacityCheck.closed()

        instance = _instance(template, self.booking_repository.count_non_terminal(target, slot_key))
        return CapacityCheck(
            ok=instance.remaining > 0,
            remaining=instance.remaining,
            capacity=instance.capacity,
        )

    @BaseService.measure_operation("resolve_range")
    def resolve_range(self, start: date, end: date) -> List[CalendarDay]:
        """
        Calendar view for every day from ``start`` to ``end`` inclusive.

        Raises:
            ValidationException: reversed range or range longer than the configured maximum
        """
        if end < start:
            raise ValidationException(
                "End date must not be before start date",
                code="INVALID_DATE_RANGE",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        span = (end - start).days + 1
        if span > settings.availability_max_range_days:
            raise ValidationException(
                f"Date range cannot exceed {settings.availability_max_range_days} days",
                code="DATE_RANGE_TOO_LONG",
                details={"days": span, "max_days": settings.availability_max_range_days},
            )

        rules = [holiday_rule(h) for h in self.calendar_repository.list_holidays(start, end)]
        templates_by_dow = self._templates_by_weekday()
        counts = self.booking_repository.count_non_terminal_by_slot(start, end)
        today = self.today()

        days: List[CalendarDay] = []
        for offset in range(span):
            current = start + timedelta(days=offset)
            holiday = matching_holiday(rules, current)
            if holiday is not None:
                slots: List[SlotInstance] = []
            else:
                slots = self._instances_for(
                    current, templates_by_dow.get(day_of_week(current), []), counts
                )
            days.append(
                CalendarDay(
                    day=current,
                    is_holiday=holiday is not None,
                    holiday_name=holiday.name if holiday is not None else None,
                    is_weekend=is_weekend(current),
                    is_past=current < today,
                    slots=slots,
                    bookings_count=sum(
                        count for (d, _key), count in counts.items() if d == current
                    ),
                )
            )
        return days

    @BaseService.measure_operation("find_alternatives")
    def find_alternatives(
        self,
        target: date,
        required_units: int,
        vehicle_id: Optional[str] = None,
        exclude_slot_key: Optional[str] = None,
    ) -> List[AlternativeDay]:
        """
        Open slot instances a rejected request could move to.

        Searches the requested day first, then the following days up to the
        configured horizon. Past days and days beyond the advance booking
        window are skipped. At most ``max_alternatives`` slots are returned
        in total.
        """
        limit = settings.max_alternatives
        if limit <= 0 or required_units <= 0:
            return []

        today = self.today()
        first = max(target, today)
        last = min(
            target + timedelta(days=settings.alternative_search_days),
            today + timedelta(days=settings.max_advance_booking_days),
        )
        if last < first:
            return []

        vehicle_slots: Set[Tuple[date, str]] = set()
        if vehicle_id:
            vehicle_slots = self.booking_repository.get_vehicle_slot_keys(vehicle_id, first, last)

        rules = [holiday_rule(h) for h in self.calendar_repository.list_holidays(first, last)]
        templates_by_dow = self._templates_by_weekday()
        counts = self.booking_repository.count_non_terminal_by_slot(first, last)

        found: List[AlternativeDay] = []
        remaining_budget = limit
        current = first
        while current <= last and remaining_budget > 0:
            if matching_holiday(rules, current) is None:
                open_slots = [
                    slot
                    for slot in self._instances_for(
                        current, templates_by_dow.get(day_of_week(current), []), counts
                    )
                    if slot.remaining >= required_units
                    and not (current == target and slot.key == exclude_slot_key)
                    and (current, slot.key) not in vehicle_slots
                ][:remaining_budget]
                if open_slots:
                    found.append(AlternativeDay(day=current, slots=open_slots))
                    remaining_budget -= len(open_slots)
            current += timedelta(days=1)
        return found

    def _templates_by_weekday(self) -> Dict[int, List[TimeSlot]]:
        grouped: Dict[int, List[TimeSlot]] = {}
        for template in self.calendar_repository.get_active_templates():
            grouped.setdefault(int(template.day_of_week), []).append(template)
        return grouped

    @staticmethod
    def _instances_for(
        target: date,
        templates: Sequence[TimeSlot],
        counts: Dict[Tuple[date, str], int],
    ) -> List[SlotInstance]:
        instances = [
            _instance(t, counts.get((target, t.id), 0))
            for t in templates
            if int(t.max_bookings) > 0
        ]
        instances.sort(key=lambda s: (s.start_time, s.key))
        return instances
