from .calendar_rules import (
    AdmissionOutcome,
    AdmissionRejection,
    AdmissionResult,
    AlternativeDay,
    CalendarDay,
    CapacityCheck,
    FixedHoliday,
    HolidayRule,
    RecurringHoliday,
    RejectionCode,
    SlotInstance,
    day_of_week,
)

__all__ = [
    "AdmissionOutcome",
    "AdmissionRejection",
    "AdmissionResult",
    "AlternativeDay",
    "CalendarDay",
    "CapacityCheck",
    "FixedHoliday",
    "HolidayRule",
    "RecurringHoliday",
    "RejectionCode",
    "SlotInstance",
    "day_of_week",
]
