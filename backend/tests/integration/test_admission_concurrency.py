"""
Admission under concurrent load.

Each worker thread opens its own session against the same file-backed
SQLite database, mirroring how the API runs one admission per worker
thread. A barrier releases all workers at once.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
import threading
from typing import Callable, List

import pytest

from dealer_scheduling.core.config import settings
from dealer_scheduling.core.exceptions import RepositoryException, SchedulingUnavailableException
from dealer_scheduling.domain.calendar_rules import AdmissionRejection, AdmissionResult, RejectionCode
from dealer_scheduling.models.booking import Booking
from dealer_scheduling.models.catalog import Vehicle
from dealer_scheduling.repositories.booking_repository import BookingRepository
from dealer_scheduling.services.availability_service import AvailabilityService
from tests.utils.builders import NEXT_MONDAY, customer, make_request


def run_concurrently(calls: List[Callable[[], object]]) -> List[object]:
    barrier = threading.Barrier(len(calls))

    def _run(call):
        barrier.wait(timeout=10)
        try:
            return call()
        except Exception as exc:  # surfaced to the assertions below
            return exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_run, calls))


def count_rows(session_factory, slot_key=None) -> int:
    session = session_factory()
    try:
        query = session.query(Booking)
        if slot_key:
            query = query.filter(Booking.time_slot_key == slot_key)
        return query.count()
    finally:
        session.close()


def codes(outcomes) -> List[str]:
    return sorted(
        "ADMITTED" if isinstance(o, AdmissionResult) else getattr(o, "code", type(o).__name__)
        for o in outcomes
    )


@pytest.fixture
def more_vehicles(db, vehicles) -> List[Vehicle]:
    extra = [Vehicle(make="Chery", model=f"Tiggo {n}", year=2024) for n in range(8)]
    db.add_all(extra)
    db.commit()
    return vehicles[:4] + extra


class TestConcurrentScenarios:
    def test_three_requests_fill_a_three_unit_slot(
        self, admit, calendar, vehicles, session_factory, today
    ):
        slot = calendar["mon_0900"].id
        calls = [
            (lambda i=i: admit(
                make_request(time_slot_key=slot, vehicle_id=vehicles[i].id, customer_info=customer(i))
            ))
            for i in range(3)
        ]

        outcomes = run_concurrently(calls)

        assert codes(outcomes) == ["ADMITTED"] * 3
        assert all(o.bookings[0].status == "PENDING" for o in outcomes)
        session = session_factory()
        try:
            check = AvailabilityService(session, today=today).check_capacity(NEXT_MONDAY, slot)
        finally:
            session.close()
        assert check.remaining == 0

    def test_fourth_request_is_slot_full(self, admit, calendar, vehicles, session_factory):
        slot = calendar["mon_0900"].id
        calls = [
            (lambda i=i: admit(
                make_request(time_slot_key=slot, vehicle_id=vehicles[i].id, customer_info=customer(i))
            ))
            for i in range(4)
        ]

        outcomes = run_concurrently(calls)

        assert codes(outcomes) == ["ADMITTED"] * 3 + [RejectionCode.SLOT_FULL]
        assert count_rows(session_factory, slot) == 3

    def test_same_vehicle_same_slot_admits_once(self, admit, calendar, vehicles, session_factory):
        slot = calendar["mon_0900"].id
        calls = [
            (lambda i=i: admit(
                make_request(time_slot_key=slot, vehicle_id=vehicles[0].id, customer_info=customer(i))
            ))
            for i in range(2)
        ]

        outcomes = run_concurrently(calls)

        assert codes(outcomes) == ["ADMITTED", RejectionCode.VEHICLE_ALREADY_BOOKED]
        assert count_rows(session_factory, slot) == 1

    def test_two_unit_service_against_one_remaining(
        self, admit, calendar, vehicles, service_types, session_factory
    ):
        slot = calendar["mon_1000"].id
        outcome = admit(
            make_request(
                booking_type="SERVICE",
                time_slot_key=slot,
                service_type_ids=[service_types[0].id, service_types[1].id],
            )
        )

        assert isinstance(outcome, AdmissionRejection)
        assert outcome.code == RejectionCode.SLOT_FULL
        assert outcome.details["required"] == 2
        assert count_rows(session_factory) == 0


def test_capacity_never_exceeded(admit, calendar, more_vehicles, session_factory):
    slot = calendar["mon_0900"].id
    calls = [
        (lambda i=i: admit(
            make_request(time_slot_key=slot, vehicle_id=more_vehicles[i].id, customer_info=customer(i))
        ))
        for i in range(10)
    ]

    outcomes = run_concurrently(calls)

    assert codes(outcomes).count("ADMITTED") == 3
    assert codes(outcomes).count(RejectionCode.SLOT_FULL) == 7
    assert count_rows(session_factory, slot) == 3


def test_mixed_service_and_test_drive_respect_units(
    admit, calendar, vehicles, service_types, session_factory
):
    slot = calendar["mon_0900"].id
    two_units = [service_types[0].id, service_types[1].id]
    calls = [
        lambda: admit(
            make_request(booking_type="SERVICE", time_slot_key=slot, service_type_ids=two_units)
        ),
        lambda: admit(
            make_request(
                booking_type="SERVICE",
                time_slot_key=slot,
                service_type_ids=two_units,
                customer_info=customer(1),
            )
        ),
        lambda: admit(
            make_request(time_slot_key=slot, vehicle_id=vehicles[0].id, customer_info=customer(2))
        ),
    ]

    run_concurrently(calls)

    assert count_rows(session_factory, slot) <= 3


def test_distinct_slots_admit_in_parallel(admit, calendar, vehicles, session_factory):
    calls = [
        lambda: admit(
            make_request(time_slot_key=calendar["mon_0900"].id, vehicle_id=vehicles[0].id)
        ),
        lambda: admit(
            make_request(
                time_slot_key=calendar["mon_1000"].id,
                vehicle_id=vehicles[1].id,
                customer_info=customer(1),
            )
        ),
    ]

    outcomes = run_concurrently(calls)

    assert codes(outcomes) == ["ADMITTED", "ADMITTED"]
    assert count_rows(session_factory) == 2


# ============================================================================
# Failure handling
# ============================================================================


def test_lock_timeout_is_retryable_and_writes_nothing(
    admit, calendar, vehicles, lock_registry, session_factory, monkeypatch
):
    monkeypatch.setattr(settings, "slot_lock_timeout_seconds", 0.05)
    slot = calendar["mon_0900"].id

    with lock_registry.hold(NEXT_MONDAY, slot, timeout=1):
        with pytest.raises(SchedulingUnavailableException) as exc_info:
            admit(make_request(time_slot_key=slot, vehicle_id=vehicles[0].id))

    assert exc_info.value.code == "SLOT_LOCK_TIMEOUT"
    assert count_rows(session_factory) == 0
    assert lock_registry.tracked_count() == 0


def test_fan_out_is_all_or_nothing(
    admit, calendar, service_types, session_factory, monkeypatch, dispatcher, sender
):
    original = BookingRepository.insert_bookings

    def insert_then_fail(self, rows):
        original(self, rows)
        raise RepositoryException("disk full")

    monkeypatch.setattr(BookingRepository, "insert_bookings", insert_then_fail)

    with pytest.raises(SchedulingUnavailableException):
        admit(
            make_request(
                booking_type="SERVICE",
                time_slot_key=calendar["mon_0900"].id,
                service_type_ids=[service_types[0].id, service_types[1].id],
            )
        )

    assert count_rows(session_factory) == 0
    dispatcher.shutdown(wait=True)
    assert sender.sent == []


def test_notification_failure_does_not_undo_admission(
    admit, calendar, vehicles, session_factory, monkeypatch
):
    from dealer_scheduling.services.notification_service import NotificationDispatcher

    def explode(self, bookings):
        raise RuntimeError("queue closed")

    monkeypatch.setattr(NotificationDispatcher, "dispatch", explode)

    outcome = admit(make_request(time_slot_key=calendar["mon_0900"].id, vehicle_id=vehicles[0].id))

    assert isinstance(outcome, AdmissionResult)
    assert outcome.total_price == Decimal("0")
    assert count_rows(session_factory) == 1
