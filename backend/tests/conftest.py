# backend/tests/conftest.py
"""
Shared fixtures.

Every test gets its own file-backed SQLite database under ``tmp_path`` so
that tests which spin up threads can open one session per thread against
the same data.
"""

import os

# Must be set before the package is imported: skip .env, keep settings deterministic.
os.environ.setdefault("CI", "1")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_scheduling.db")

from datetime import date, time
from decimal import Decimal
from typing import Callable, Dict, List

from fastapi.testclient import TestClient
import pytest

from dealer_scheduling.api.dependencies import get_db, get_dispatcher, get_session_factory
from dealer_scheduling.core.slot_lock import SlotLockRegistry
from dealer_scheduling.database import build_engine, build_session_factory, init_db
from dealer_scheduling.main import create_app
from dealer_scheduling.models.calendar import Holiday, TimeSlot
from dealer_scheduling.models.catalog import ServiceType, Vehicle, VehicleStatus
from dealer_scheduling.schemas.booking import BookingRequest
from dealer_scheduling.services.admission_service import BookingAdmissionService
from dealer_scheduling.services.notification_service import NotificationDispatcher
from tests.utils.builders import FIXED_TODAY, RecordingSender


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'scheduling.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def today() -> Callable[[], date]:
    return lambda: FIXED_TODAY


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def dispatcher(sender):
    d = NotificationDispatcher(sender, max_workers=2, max_attempts=3, sleep=lambda _s: None)
    yield d
    d.shutdown(wait=True)


@pytest.fixture
def lock_registry() -> SlotLockRegistry:
    return SlotLockRegistry()


@pytest.fixture
def calendar(db) -> Dict[str, TimeSlot]:
    """Monday 09-10 (3), Monday 10-11 (1), Monday 12-13 (0), Tuesday 09-10 (2), inactive Monday 16-17."""
    slots = {
        "mon_0900": TimeSlot(day_of_week=1, start_time=time(9), end_time=time(10), max_bookings=3),
        "mon_1000": TimeSlot(day_of_week=1, start_time=time(10), end_time=time(11), max_bookings=1),
        "mon_1200": TimeSlot(day_of_week=1, start_time=time(12), end_time=time(13), max_bookings=0),
        "tue_0900": TimeSlot(day_of_week=2, start_time=time(9), end_time=time(10), max_bookings=2),
        "mon_1600_off": TimeSlot(
            day_of_week=1, start_time=time(16), end_time=time(17), max_bookings=3, is_active=False
        ),
    }
    db.add_all(slots.values())
    db.commit()
    return slots


@pytest.fixture
def vehicles(db) -> List[Vehicle]:
    """Four available cars, the last one sold."""
    cars = [
        Vehicle(make="Toyota", model="Corolla", year=2024),
        Vehicle(make="Hyundai", model="Elantra", year=2023),
        Vehicle(make="Kia", model="Sportage", year=2024),
        Vehicle(make="Nissan", model="Sunny", year=2022),
        Vehicle(make="BMW", model="X5", year=2021, status=VehicleStatus.SOLD.value),
    ]
    db.add_all(cars)
    db.commit()
    return cars


@pytest.fixture
def service_types(db) -> List[ServiceType]:
    types = [
        ServiceType(name="Oil change", category="maintenance", price=Decimal("100.00")),
        ServiceType(name="Brake inspection", category="safety", price=Decimal("250.00")),
        ServiceType(name="Retired service", category="legacy", price=Decimal("50.00"), is_active=False),
    ]
    db.add_all(types)
    db.commit()
    return types


@pytest.fixture
def new_year(db) -> Holiday:
    h = Holiday(date=date(2024, 1, 1), name="New Year's Day", is_recurring=True)
    db.add(h)
    db.commit()
    return h


@pytest.fixture
def admit(session_factory, today, dispatcher, lock_registry):
    """Run one admission on a fresh session, the way each request thread does."""

    def _admit(request: BookingRequest, **service_kwargs):
        session = session_factory()
        try:
            service = BookingAdmissionService(
                session,
                today=service_kwargs.pop("today", today),
                dispatcher=service_kwargs.pop("dispatcher", dispatcher),
                lock_registry=service_kwargs.pop("lock_registry", lock_registry),
                **service_kwargs,
            )
            return service.admit(request)
        finally:
            session.close()

    return _admit


@pytest.fixture
def client(session_factory, dispatcher):
    app = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client
