"""Value types and pure rules shared by availability and admission."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum
import re
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

if TYPE_CHECKING:
    from ..models.booking import Booking
    from ..models.calendar import Holiday

SLOT_KEY_PATTERN = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$")


def day_of_week(value: date) -> int:
    """Weekday index used by slot templates: 0 = Sunday ... 6 = Saturday."""
    return value.isoweekday() % 7


def is_weekend(value: date) -> bool:
    return day_of_week(value) in (0, 6)


def is_valid_slot_key(value: Optional[str]) -> bool:
    return bool(value) and SLOT_KEY_PATTERN.match(value or "") is not None


@dataclass(frozen=True)
class FixedHoliday:
    """Closure on exactly one calendar date."""

    on: date
    name: str = ""

    def matches(self, candidate: date) -> bool:
        return candidate == self.on


@dataclass(frozen=True)
class RecurringHoliday:
    """
    Closure repeating every year on the same month and day.

    A Feb 29 recurring holiday only applies in leap years.
    """

    month: int
    day: int
    name: str = ""

    def matches(self, candidate: date) -> bool:
        return candidate.month == self.month and candidate.day == self.day


HolidayRule = Union[FixedHoliday, RecurringHoliday]


def holiday_rule(record: "Holiday") -> HolidayRule:
    if record.is_recurring:
        return RecurringHoliday(month=record.date.month, day=record.date.day, name=record.name)
    return FixedHoliday(on=record.date, name=record.name)


def matching_holiday(rules: Iterable[HolidayRule], candidate: date) -> Optional[HolidayRule]:
    for rule in rules:
        if rule.matches(candidate):
            return rule
    return None


@dataclass(frozen=True)
class SlotInstance:
    """A template materialized on a concrete date."""

    key: str
    start_time: time
    end_time: time
    capacity: int
    remaining: int

    @property
    def available(self) -> bool:
        return self.remaining > 0


@dataclass(frozen=True)
class CapacityCheck:
    ok: bool
    remaining: int
    capacity: int

    @classmethod
    def closed(cls) -> "CapacityCheck":
        return cls(ok=False, remaining=0, capacity=0)


@dataclass(frozen=True)
class CalendarDay:
    day: date
    is_holiday: bool
    holiday_name: Optional[str]
    is_weekend: bool
    is_past: bool
    slots: list[SlotInstance] = field(default_factory=list)
    bookings_count: int = 0


@dataclass(frozen=True)
class AlternativeDay:
    day: date
    slots: list[SlotInstance]


class RejectionCode(str, Enum):
    SLOT_FULL = "SLOT_FULL"
    VEHICLE_ALREADY_BOOKED = "VEHICLE_ALREADY_BOOKED"
    INVALID_DATE = "INVALID_DATE"
    INVALID_SLOT = "INVALID_SLOT"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    @property
    def http_status(self) -> int:
        if self in (RejectionCode.SLOT_FULL, RejectionCode.VEHICLE_ALREADY_BOOKED):
            return 409
        return 422


@dataclass(frozen=True)
class AdmissionRejection:
    """Expected business outcome of an admission attempt that wrote nothing."""

    code: RejectionCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    alternatives: list[AlternativeDay] = field(default_factory=list)

    admitted = False


@dataclass(frozen=True)
class AdmissionResult:
    bookings: list["Booking"]
    total_price: Decimal

    admitted = True


AdmissionOutcome = Union[AdmissionResult, AdmissionRejection]


def required_units(booking_type: str, service_type_ids: Iterable[str]) -> int:
    """Capacity units a request consumes: one per service type, or one for a test drive."""
    if booking_type == "SERVICE":
        return len(list(service_type_ids))
    return 1
