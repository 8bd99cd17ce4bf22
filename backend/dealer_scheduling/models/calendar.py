# backend/dealer_scheduling/models/calendar.py
"""
Calendar configuration models.

The calendar is the sole source of truth for when the dealership takes
appointments:

Classes:
    TimeSlot: Recurring weekly slot template with a booking capacity
    Holiday: Blackout date, either a single day or recurring every year

Template ids double as slot keys. A booking refers to the template it
consumed through ``time_slot_key``; two templates on the same weekday are
separate capacity pools even when their hours overlap.
"""

import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class TimeSlot(Base):
    """Recurring weekly time slot. day_of_week: 0 = Sunday ... 6 = Saturday."""

    __tablename__ = "time_slots"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    day_of_week = Column(Integer, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    max_bookings = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_time_slots_day_of_week"),
        CheckConstraint("max_bookings >= 0", name="ck_time_slots_capacity_non_negative"),
        CheckConstraint("start_time < end_time", name="ck_time_slots_time_order"),
        Index("idx_time_slots_day_active", "day_of_week", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<TimeSlot {self.id} dow={self.day_of_week} "
            f"{self.start_time}-{self.end_time} cap={self.max_bookings}>"
        )


class Holiday(Base):
    """
    Dealership closure day.

    When ``is_recurring`` is set only the month and day of ``date`` are
    significant and the closure repeats every year.
    """

    __tablename__ = "holidays"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    date = Column(Date, nullable=False, index=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        kind = "recurring" if self.is_recurring else "fixed"
        return f"<Holiday {self.name} {self.date} ({kind})>"
