# backend/dealer_scheduling/services/notification_service.py
"""
Notification Dispatcher

Hands admitted bookings to notification senders on a background worker
pool. Dispatch is fire-and-forget: ``dispatch`` returns as soon as the jobs
are queued, delivery failures are retried a bounded number of times and
then logged. Nothing here can fail or roll back an admission.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
import logging
import threading
import time
from typing import Callable, List, Optional, Protocol, Sequence

import httpx

from ..core.config import settings
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..schemas.notification import BookingNotice

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    """Delivers one notice. Raising signals a failed attempt."""

    def send(self, notice: BookingNotice) -> None:
        ...


class LoggingNotificationSender:
    """Default sender: records the notice in the application log."""

    def send(self, notice: BookingNotice) -> None:
        logger.info(
            f"Booking notice {notice.kind} for {notice.recipient}",
            extra={
                "kind": notice.kind,
                "booking_ids": notice.booking_ids,
                "booking_date": notice.booking_date.isoformat(),
                "booking_type": notice.booking_type,
            },
        )


class WebhookNotificationSender:
    """POSTs each notice as JSON to an HTTP endpoint."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def send(self, notice: BookingNotice) -> None:
        response = self._client.post(self.url, json=notice.model_dump(mode="json"))
        response.raise_for_status()

    def close(self) -> None:
        self._client.close()


def build_notices(bookings: Sequence[Booking], admin_email: str) -> List[BookingNotice]:
    """
    Snapshot one admission into a customer confirmation and an admin alert.

    All rows of an admission share date, slot, type and customer.
    """
    if not bookings:
        return []
    first = bookings[0]
    customer = first.customer
    vehicle = first.vehicle
    common = {
        "booking_ids": [b.id for b in bookings],
        "booking_type": first.booking_type,
        "booking_date": first.booking_date,
        "start_time": first.start_time,
        "end_time": first.end_time,
        "status": first.status,
        "customer_name": customer.name,
        "customer_email": customer.email,
        "vehicle_id": first.vehicle_id,
        "vehicle_info": vehicle.display_name if vehicle is not None else None,
        "service_names": [b.service_type.name for b in bookings if b.service_type is not None],
        "total_price": sum((Decimal(b.price or 0) for b in bookings), Decimal("0")),
    }
    return [
        BookingNotice(kind="customer_confirmation", recipient=customer.email, **common),
        BookingNotice(kind="admin_alert", recipient=admin_email, **common),
    ]


class NotificationDispatcher:
    """Bounded worker pool delivering booking notices with retry."""

    def __init__(
        self,
        sender: NotificationSender,
        *,
        max_workers: int = 2,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        admin_email: str = "bookings@dealership.local",
        enabled: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.sender = sender
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = max(0.0, backoff_seconds)
        self.admin_email = admin_email
        self.enabled = enabled
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="booking-notify"
        )

    def dispatch(self, bookings: Sequence[Booking]) -> List[Future]:
        """Queue notices for an admission and return without waiting."""
        if not self.enabled or not bookings:
            return []
        try:
            notices = build_notices(bookings, self.admin_email)
        except Exception as exc:
            logger.error(
                f"Failed to build booking notices: {str(exc)}",
                extra={"booking_ids": [b.id for b in bookings]},
            )
            return []
        return [self._executor.submit(self._deliver, notice) for notice in notices]

    def _deliver(self, notice: BookingNotice) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.sender.send(notice)
                prometheus_metrics.record_notification_outcome(notice.kind, "sent")
                return True
            except Exception as exc:
                if attempt >= self.max_attempts:
                    prometheus_metrics.record_notification_outcome(notice.kind, "failed")
                    logger.error(
                        f"Booking notice {notice.kind} failed after {attempt} attempts: {exc}",
                        extra={"booking_ids": notice.booking_ids, "kind": notice.kind},
                    )
                    return False
                logger.warning(
                    f"Booking notice {notice.kind} attempt {attempt} failed, retrying: {exc}",
                    extra={"booking_ids": notice.booking_ids},
                )
                self._sleep(self.backoff_seconds * attempt)
        return False

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


_dispatcher: Optional[NotificationDispatcher] = None
_dispatcher_lock = threading.Lock()


def _default_sender() -> NotificationSender:
    if settings.notification_webhook_url:
        return WebhookNotificationSender(
            settings.notification_webhook_url,
            timeout_seconds=settings.notification_webhook_timeout_seconds,
        )
    return LoggingNotificationSender()


def get_notification_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher built from settings on first use."""
    global _dispatcher
    if _dispatcher is not None:
        return _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = NotificationDispatcher(
                _default_sender(),
                max_workers=settings.notification_workers,
                max_attempts=settings.notification_max_attempts,
                backoff_seconds=settings.notification_retry_backoff_seconds,
                admin_email=settings.admin_notification_email,
                enabled=settings.notifications_enabled,
            )
        return _dispatcher


def shutdown_notification_dispatcher() -> None:
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is not None:
            _dispatcher.shutdown(wait=True)
            _dispatcher = None
