"""Payload handed to notification senders."""

from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import ClockTime, Money

NoticeKind = Literal["customer_confirmation", "admin_alert"]


class BookingNotice(BaseModel):
    """
    Immutable snapshot of one admission.

    Built from ORM rows before the job leaves the request thread so that
    workers never touch a database session. A SERVICE admission that fanned
    out to several rows is still a single notice.
    """

    model_config = ConfigDict(frozen=True)

    kind: NoticeKind
    recipient: str
    booking_ids: List[str]
    booking_type: str
    booking_date: date
    start_time: ClockTime
    end_time: ClockTime
    status: str
    customer_name: str
    customer_email: str
    vehicle_id: Optional[str] = None
    vehicle_info: Optional[str] = None
    service_names: List[str] = Field(default_factory=list)
    total_price: Money = Decimal("0")
