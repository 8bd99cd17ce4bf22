# backend/dealer_scheduling/models/booking.py
"""
Booking model for the dealership scheduler.

A booking is one consumed capacity unit of a slot instance. SERVICE requests
covering several service types are stored as several rows sharing the same
``(booking_date, time_slot_key)``.

The template's hours are snapshotted into ``start_time``/``end_time`` at
admission so the record survives later calendar edits. Scheduling fields are
never rewritten after insert; status changes belong to downstream workflows.
"""

from enum import Enum
import logging

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class BookingType(str, Enum):
    TEST_DRIVE = "TEST_DRIVE"
    SERVICE = "SERVICE"


# Statuses that occupy slot capacity.
NON_TERMINAL_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_type = Column(String(20), nullable=False)

    booking_date = Column(Date, nullable=False)
    time_slot_key = Column(String(26), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    vehicle_id = Column(String(26), ForeignKey("vehicles.id"), nullable=True)
    service_type_id = Column(String(26), ForeignKey("service_types.id"), nullable=True)
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    customer = relationship("Customer", lazy="joined")
    vehicle = relationship("Vehicle")
    service_type = relationship("ServiceType")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED', 'NO_SHOW')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "booking_type IN ('TEST_DRIVE', 'SERVICE')",
            name="ck_bookings_type",
        ),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        Index("idx_bookings_slot_status", "booking_date", "time_slot_key", "status"),
        Index("idx_bookings_vehicle_slot", "vehicle_id", "booking_date", "time_slot_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} {self.booking_type} {self.booking_date} "
            f"slot={self.time_slot_key} status={self.status}>"
        )
