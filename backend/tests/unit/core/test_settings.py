import pytest
from pydantic import ValidationError

from dealer_scheduling.core.config import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.initial_booking_status == "PENDING"
    assert s.max_advance_booking_days == 90
    assert s.slot_lock_timeout_seconds > 0


def test_aliases_and_normalization():
    s = Settings(
        _env_file=None,
        INITIAL_BOOKING_STATUS=" confirmed ",
        LOG_LEVEL="debug",
        BUSINESS_TIMEZONE="Africa/Cairo",
    )
    assert s.initial_booking_status == "CONFIRMED"
    assert s.log_level == "DEBUG"
    assert s.tz.key == "Africa/Cairo"


def test_sqlite_detection():
    assert Settings(_env_file=None, DATABASE_URL="sqlite:///x.db").is_sqlite
    assert not Settings(_env_file=None, DATABASE_URL="postgresql://u@h/db").is_sqlite


@pytest.mark.parametrize(
    "overrides",
    [
        {"BUSINESS_TIMEZONE": "Mars/Olympus"},
        {"INITIAL_BOOKING_STATUS": "CANCELLED"},
        {"SLOT_LOCK_TIMEOUT_SECONDS": 0},
        {"MAX_ADVANCE_BOOKING_DAYS": 0},
        {"NOTIFICATION_MAX_ATTEMPTS": 0},
        {"MAX_ALTERNATIVES": -1},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
