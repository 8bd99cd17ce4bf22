# backend/dealer_scheduling/repositories/factory.py
"""
Repository Factory

Centralizes repository creation so services receive consistently
initialized repositories bound to the same session.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .calendar_repository import CalendarRepository
    from .catalog_repository import CatalogRepository
    from .slot_lock_repository import SlotLockRepository


class RepositoryFactory:
    @staticmethod
    def create_calendar_repository(db: Session) -> "CalendarRepository":
        from .calendar_repository import CalendarRepository

        return CalendarRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_catalog_repository(db: Session) -> "CatalogRepository":
        from .catalog_repository import CatalogRepository

        return CatalogRepository(db)

    @staticmethod
    def create_slot_lock_repository(db: Session) -> "SlotLockRepository":
        from .slot_lock_repository import SlotLockRepository

        return SlotLockRepository(db)
