# backend/dealer_scheduling/models/slot_lock.py
"""
Row-level lock targets for slot admission.

One row per ``(slot_date, time_slot_key)`` that has ever been admitted into.
Admission on PostgreSQL takes ``SELECT ... FOR UPDATE`` on the row so that
API processes sharing a database serialize on the same slot instance.
"""

from sqlalchemy import Column, Date, DateTime, String, UniqueConstraint
from sqlalchemy.sql import func
import ulid

from ..database import Base


class SlotLock(Base):
    __tablename__ = "slot_locks"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    slot_date = Column(Date, nullable=False)
    time_slot_key = Column(String(26), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("slot_date", "time_slot_key", name="uq_slot_locks_date_key"),
    )
