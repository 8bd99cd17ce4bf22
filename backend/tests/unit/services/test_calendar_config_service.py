from datetime import date, time, timedelta

import pytest

from dealer_scheduling.core.exceptions import ConflictException, NotFoundException, ValidationException
from dealer_scheduling.models.booking import Booking
from dealer_scheduling.models.catalog import Customer
from dealer_scheduling.schemas.calendar import HolidayCreate, TimeSlotCreate, TimeSlotUpdate
from dealer_scheduling.services.availability_service import business_today
from dealer_scheduling.services.calendar_config_service import CalendarConfigService


@pytest.fixture
def service(db) -> CalendarConfigService:
    return CalendarConfigService(db)


def _slot(**overrides) -> TimeSlotCreate:
    fields = {"day_of_week": 3, "start_time": "09:00", "end_time": "10:00", "max_bookings": 2}
    fields.update(overrides)
    return TimeSlotCreate(**fields)


class TestTimeSlots:
    def test_create_and_list(self, service):
        created = service.create_time_slot(_slot())

        assert created.id
        assert created.start_time == time(9)
        assert [t.id for t in service.list_time_slots(day_of_week=3)] == [created.id]
        assert service.list_time_slots(day_of_week=4) == []

    def test_duplicate_hours_conflict(self, service):
        service.create_time_slot(_slot())
        with pytest.raises(ConflictException) as exc_info:
            service.create_time_slot(_slot(max_bookings=5))
        assert exc_info.value.code == "TIME_SLOT_EXISTS"

    def test_schema_rejects_reversed_hours(self):
        with pytest.raises(ValueError):
            _slot(start_time="11:00", end_time="10:00")

    def test_capacity_change_applies_immediately(self, service):
        created = service.create_time_slot(_slot())
        updated = service.update_time_slot(created.id, TimeSlotUpdate(max_bookings=7))
        assert updated.max_bookings == 7

    @pytest.mark.parametrize("field", ["start_time", "end_time", "max_bookings", "is_active"])
    def test_update_rejects_explicit_null(self, field):
        with pytest.raises(ValueError, match="cannot be null"):
            TimeSlotUpdate.model_validate({field: None})

    def test_update_skips_null_fields(self, service):
        created = service.create_time_slot(_slot())
        unchecked = TimeSlotUpdate.model_construct(end_time=None, max_bookings=5)

        updated = service.update_time_slot(created.id, unchecked)
        assert updated.end_time == time(10)
        assert updated.max_bookings == 5

    def test_update_rejects_reversed_hours(self, service):
        created = service.create_time_slot(_slot())
        with pytest.raises(ValidationException):
            service.update_time_slot(created.id, TimeSlotUpdate(end_time="08:00"))

    def test_moving_a_slot_with_upcoming_bookings_conflicts(self, db, service):
        created = service.create_time_slot(_slot())
        owner = Customer(name="A", email="a@example.com", phone="0100")
        db.add(owner)
        db.flush()
        db.add(
            Booking(
                booking_type="SERVICE",
                booking_date=business_today() + timedelta(days=3),
                time_slot_key=created.id,
                start_time=time(9),
                end_time=time(10),
                customer_id=owner.id,
                status="CONFIRMED",
                price=0,
            )
        )
        db.commit()

        with pytest.raises(ConflictException) as exc_info:
            service.update_time_slot(created.id, TimeSlotUpdate(start_time="08:00"))
        assert exc_info.value.code == "TIME_SLOT_IN_USE"
        # Capacity edits stay allowed.
        assert service.update_time_slot(created.id, TimeSlotUpdate(max_bookings=1)).max_bookings == 1

    def test_deactivate_hides_from_active_listing(self, service):
        created = service.create_time_slot(_slot())
        service.deactivate_time_slot(created.id)

        assert service.list_time_slots(day_of_week=3) == []
        assert [t.id for t in service.list_time_slots(3, include_inactive=True)] == [created.id]

    def test_unknown_slot(self, service):
        with pytest.raises(NotFoundException):
            service.get_time_slot("01HF4G12ABCDEF3456789XYZAB")


class TestHolidays:
    def test_create_and_list_window(self, service):
        fixed = service.create_holiday(HolidayCreate(date=date(2025, 4, 20), name="Easter"))
        recurring = service.create_holiday(
            HolidayCreate(date=date(2024, 1, 1), name="New Year", is_recurring=True)
        )

        in_window = {h.id for h in service.list_holidays(date(2025, 4, 1), date(2025, 4, 30))}
        assert in_window == {fixed.id, recurring.id}
        outside = {h.id for h in service.list_holidays(date(2025, 5, 1), date(2025, 5, 31))}
        assert outside == {recurring.id}

    def test_duplicate_recurring_holiday_conflicts(self, service):
        service.create_holiday(HolidayCreate(date=date(2024, 1, 1), name="NY", is_recurring=True))
        with pytest.raises(ConflictException) as exc_info:
            service.create_holiday(
                HolidayCreate(date=date(2030, 1, 1), name="NY again", is_recurring=True)
            )
        assert exc_info.value.code == "HOLIDAY_EXISTS"

    def test_fixed_holiday_on_recurring_date_is_allowed(self, service):
        service.create_holiday(HolidayCreate(date=date(2024, 1, 1), name="NY", is_recurring=True))
        service.create_holiday(HolidayCreate(date=date(2026, 1, 1), name="Stocktake"))

    def test_delete(self, service):
        holiday = service.create_holiday(HolidayCreate(date=date(2025, 4, 20), name="Easter"))
        service.delete_holiday(holiday.id)
        assert service.list_holidays() == []
        with pytest.raises(NotFoundException):
            service.delete_holiday(holiday.id)

    def test_reversed_window(self, service):
        with pytest.raises(ValidationException):
            service.list_holidays(date(2025, 5, 1), date(2025, 4, 1))


def test_seed_default_calendar_is_idempotent(service):
    first = service.seed_default_calendar(year=2025)
    second = service.seed_default_calendar(year=2025)

    assert first == {"time_slots": 35, "holidays": 7}
    assert second == {"time_slots": 0, "holidays": 0}
    monday = service.list_time_slots(day_of_week=1)
    assert [t.start_time.hour for t in monday] == [9, 10, 11, 12, 14, 15, 16]
    assert [t.max_bookings for t in monday] == [3, 3, 3, 2, 3, 3, 3]
    assert service.list_time_slots(day_of_week=0) == []
    assert all(h.is_recurring for h in service.list_holidays())


def test_operations_are_measured(service):
    service.create_time_slot(_slot(day_of_week=5))

    summary = service.get_metrics()["create_time_slot"]
    assert summary["count"] >= 1
    assert 0 <= summary["success_rate"] <= 1
