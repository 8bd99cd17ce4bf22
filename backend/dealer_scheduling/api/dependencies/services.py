# backend/dealer_scheduling/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.calendar_config_service import CalendarConfigService
from ...services.notification_service import NotificationDispatcher, get_notification_dispatcher
from .database import get_db


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_calendar_config_service(db: Session = Depends(get_db)) -> CalendarConfigService:
    return CalendarConfigService(db)


def get_dispatcher() -> NotificationDispatcher:
    return get_notification_dispatcher()
