# backend/dealer_scheduling/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment name (development, staging, production)",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database
    database_url: str = Field(
        default="sqlite:///./scheduling.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the booking records store",
    )
    db_echo: bool = Field(default=False, alias="DB_ECHO")
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(
        default=5,
        alias="DB_POOL_TIMEOUT",
        description="Seconds to wait for a pooled connection before failing fast",
    )
    sqlite_busy_timeout_seconds: float = Field(default=15.0, alias="SQLITE_BUSY_TIMEOUT_SECONDS")

    # Scheduling policy
    business_timezone: str = Field(
        default="UTC",
        alias="BUSINESS_TIMEZONE",
        description="IANA timezone of the dealership; decides what 'today' means",
    )
    initial_booking_status: Literal["PENDING", "CONFIRMED"] = Field(
        default="PENDING",
        alias="INITIAL_BOOKING_STATUS",
        description="Status given to newly admitted bookings",
    )
    max_advance_booking_days: int = Field(default=90, alias="MAX_ADVANCE_BOOKING_DAYS")

    # Admission concurrency
    slot_lock_timeout_seconds: float = Field(
        default=5.0,
        alias="SLOT_LOCK_TIMEOUT_SECONDS",
        description="Bounded wait for the per-slot admission lock",
    )
    slot_row_lock_enabled: bool = Field(
        default=True,
        alias="SLOT_ROW_LOCK_ENABLED",
        description="Also take a SELECT ... FOR UPDATE row lock on PostgreSQL",
    )

    # Availability
    availability_max_range_days: int = Field(default=62, alias="AVAILABILITY_MAX_RANGE_DAYS")
    alternative_search_days: int = Field(default=7, alias="ALTERNATIVE_SEARCH_DAYS")
    max_alternatives: int = Field(default=5, alias="MAX_ALTERNATIVES")

    # Notifications
    notifications_enabled: bool = Field(default=True, alias="NOTIFICATIONS_ENABLED")
    notification_workers: int = Field(default=2, alias="NOTIFICATION_WORKERS")
    notification_max_attempts: int = Field(default=3, alias="NOTIFICATION_MAX_ATTEMPTS")
    notification_retry_backoff_seconds: float = Field(
        default=0.5, alias="NOTIFICATION_RETRY_BACKOFF_SECONDS"
    )
    notification_webhook_url: Optional[str] = Field(
        default=None,
        alias="NOTIFICATION_WEBHOOK_URL",
        description="When set, booking notices are POSTed here instead of only being logged",
    )
    notification_webhook_timeout_seconds: float = Field(
        default=5.0, alias="NOTIFICATION_WEBHOOK_TIMEOUT_SECONDS"
    )
    admin_notification_email: str = Field(
        default="bookings@dealership.local", alias="ADMIN_NOTIFICATION_EMAIL"
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("business_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown BUSINESS_TIMEZONE: {value!r}") from exc
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        if value is None:
            return "INFO"
        return str(value).strip().upper() or "INFO"

    @field_validator("initial_booking_status", mode="before")
    @classmethod
    def _normalize_initial_status(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _validate_ranges(self) -> "Settings":
        if self.slot_lock_timeout_seconds <= 0:
            raise ValueError("SLOT_LOCK_TIMEOUT_SECONDS must be > 0")
        if self.max_advance_booking_days < 1:
            raise ValueError("MAX_ADVANCE_BOOKING_DAYS must be >= 1")
        if self.availability_max_range_days < 1:
            raise ValueError("AVAILABILITY_MAX_RANGE_DAYS must be >= 1")
        if self.alternative_search_days < 0:
            raise ValueError("ALTERNATIVE_SEARCH_DAYS must be >= 0")
        if self.max_alternatives < 0:
            raise ValueError("MAX_ALTERNATIVES must be >= 0")
        if self.notification_workers < 1:
            raise ValueError("NOTIFICATION_WORKERS must be >= 1")
        if self.notification_max_attempts < 1:
            raise ValueError("NOTIFICATION_MAX_ATTEMPTS must be >= 1")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
