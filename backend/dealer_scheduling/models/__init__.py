"""
Database models for the dealership scheduler.

- Calendar configuration: TimeSlot, Holiday
- Bookings: Booking with its status and type enums
- Read-mostly records owned elsewhere: Vehicle, ServiceType, Customer
- SlotLock: row lock targets used by admission on PostgreSQL
"""

from .booking import NON_TERMINAL_STATUSES, Booking, BookingStatus, BookingType
from .calendar import Holiday, TimeSlot
from .catalog import Customer, ServiceType, Vehicle, VehicleStatus
from .slot_lock import SlotLock

__all__ = [
    "NON_TERMINAL_STATUSES",
    "Booking",
    "BookingStatus",
    "BookingType",
    "Customer",
    "Holiday",
    "ServiceType",
    "SlotLock",
    "TimeSlot",
    "Vehicle",
    "VehicleStatus",
]
