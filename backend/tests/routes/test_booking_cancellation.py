"""
A client that disconnects mid-admission must not undo the admission.

The handler coroutine is cancelled while the worker thread is inside the
locked section; the booking still commits exactly once.
"""

import asyncio
import threading

import pytest

from dealer_scheduling.models.booking import Booking
from dealer_scheduling.repositories.booking_repository import BookingRepository
from dealer_scheduling.routes.v1 import bookings as bookings_v1
from dealer_scheduling.schemas.booking import BookingRequest
from tests.utils.builders import booking_payload


def _count(session_factory) -> int:
    session = session_factory()
    try:
        return session.query(Booking).count()
    finally:
        session.close()


def test_cancelled_request_still_commits(
    session_factory, dispatcher, calendar, vehicles, monkeypatch
):
    entered = threading.Event()
    release = threading.Event()
    original = BookingRepository.insert_bookings

    def insert_after_release(self, rows):
        entered.set()
        assert release.wait(timeout=10)
        return original(self, rows)

    monkeypatch.setattr(BookingRepository, "insert_bookings", insert_after_release)
    request = BookingRequest.model_validate(
        booking_payload(time_slot_key=calendar["mon_0900"].id, vehicle_id=vehicles[0].id)
    )

    async def _disconnect_mid_admission() -> None:
        task = asyncio.create_task(
            bookings_v1.create_booking(
                request, session_factory=session_factory, dispatcher=dispatcher
            )
        )
        for _ in range(1000):
            if entered.is_set():
                break
            await asyncio.sleep(0.01)
        assert entered.is_set()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        release.set()

    # asyncio.run waits for the default executor, so the worker has finished here.
    asyncio.run(_disconnect_mid_admission())

    assert _count(session_factory) == 1
