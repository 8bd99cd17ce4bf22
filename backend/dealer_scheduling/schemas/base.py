"""
Base schemas with standardized field types for consistent API responses.
"""

from datetime import time
from decimal import Decimal
import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer

# Money always serializes as a JSON number.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# Wall-clock times serialize as HH:MM.
ClockTime = Annotated[time, PlainSerializer(lambda t: t.strftime("%H:%M"), return_type=str)]

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
HH_MM_REGEX = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    return value


def parse_clock_time(value: object) -> object:
    """Accept ``HH:MM`` strings for time fields."""
    if isinstance(value, str):
        match = HH_MM_REGEX.fullmatch(value.strip())
        if not match:
            raise ValueError(f"Invalid time format: {value}. Expected HH:MM format.")
        return time(int(match.group(1)), int(match.group(2)))
    return value


class StandardizedModel(BaseModel):
    """Base model for responses."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)
