from datetime import date, time
from types import SimpleNamespace

import pytest

from dealer_scheduling.domain.calendar_rules import (
    AdmissionRejection,
    AdmissionResult,
    CapacityCheck,
    FixedHoliday,
    RecurringHoliday,
    RejectionCode,
    SlotInstance,
    day_of_week,
    holiday_rule,
    is_valid_slot_key,
    is_weekend,
    matching_holiday,
    required_units,
)


class TestDayOfWeek:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (date(2025, 6, 1), 0),  # Sunday
            (date(2025, 6, 2), 1),
            (date(2025, 6, 6), 5),
            (date(2025, 6, 7), 6),  # Saturday
        ],
    )
    def test_sunday_is_zero(self, value, expected):
        assert day_of_week(value) == expected

    def test_weekend(self):
        assert is_weekend(date(2025, 6, 1))
        assert is_weekend(date(2025, 6, 7))
        assert not is_weekend(date(2025, 6, 4))


class TestHolidayRules:
    def test_fixed_holiday_matches_only_its_date(self):
        rule = FixedHoliday(on=date(2025, 10, 6), name="Armed Forces Day")
        assert rule.matches(date(2025, 10, 6))
        assert not rule.matches(date(2026, 10, 6))

    def test_recurring_holiday_matches_every_year(self):
        rule = RecurringHoliday(month=1, day=1, name="New Year's Day")
        assert rule.matches(date(2024, 1, 1))
        assert rule.matches(date(2025, 1, 1))
        assert rule.matches(date(2031, 1, 1))
        assert not rule.matches(date(2025, 1, 2))

    def test_recurring_feb_29_only_in_leap_years(self):
        rule = RecurringHoliday(month=2, day=29)
        assert rule.matches(date(2028, 2, 29))
        assert not rule.matches(date(2027, 2, 28))
        assert not rule.matches(date(2027, 3, 1))

    def test_holiday_rule_from_record(self):
        recurring = SimpleNamespace(date=date(2024, 1, 1), is_recurring=True, name="NY")
        fixed = SimpleNamespace(date=date(2025, 4, 20), is_recurring=False, name="Easter")

        assert holiday_rule(recurring) == RecurringHoliday(month=1, day=1, name="NY")
        assert holiday_rule(fixed) == FixedHoliday(on=date(2025, 4, 20), name="Easter")

    def test_matching_holiday_returns_first_match(self):
        rules = [FixedHoliday(on=date(2025, 5, 2), name="a"), RecurringHoliday(5, 1, name="b")]
        assert matching_holiday(rules, date(2025, 5, 1)).name == "b"
        assert matching_holiday(rules, date(2025, 5, 3)) is None


def test_slot_key_format():
    assert is_valid_slot_key("01HF4G12ABCDEF3456789XYZAB")
    assert not is_valid_slot_key("")
    assert not is_valid_slot_key(None)
    assert not is_valid_slot_key("09:00-10:00")
    # Crockford base32 excludes I, L, O and U
    assert not is_valid_slot_key("01HF4G12ABCDEF3456789XYZAI")


def test_required_units():
    assert required_units("TEST_DRIVE", []) == 1
    assert required_units("SERVICE", ["a", "b", "c"]) == 3
    assert required_units("SERVICE", iter(["a", "b"])) == 2


def test_rejection_codes_map_to_http_status():
    assert RejectionCode.SLOT_FULL.http_status == 409
    assert RejectionCode.VEHICLE_ALREADY_BOOKED.http_status == 409
    assert RejectionCode.INVALID_DATE.http_status == 422
    assert RejectionCode.INVALID_SLOT.http_status == 422
    assert RejectionCode.VALIDATION_ERROR.http_status == 422


def test_outcome_flags():
    rejection = AdmissionRejection(code=RejectionCode.SLOT_FULL, message="full")
    result = AdmissionResult(bookings=[], total_price=0)
    assert rejection.admitted is False
    assert rejection.alternatives == []
    assert result.admitted is True


def test_slot_instance_available_and_closed_check():
    slot = SlotInstance(key="K", start_time=time(9), end_time=time(10), capacity=2, remaining=0)
    assert not slot.available
    assert CapacityCheck.closed() == CapacityCheck(ok=False, remaining=0, capacity=0)
