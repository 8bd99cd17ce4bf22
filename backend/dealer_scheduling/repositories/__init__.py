"""Data access layer. Repositories stage work on a session and never commit."""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .calendar_repository import CalendarRepository
from .catalog_repository import CatalogRepository
from .factory import RepositoryFactory
from .slot_lock_repository import SlotLockRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "CalendarRepository",
    "CatalogRepository",
    "RepositoryFactory",
    "SlotLockRepository",
]
