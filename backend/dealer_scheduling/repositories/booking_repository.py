# backend/dealer_scheduling/repositories/booking_repository.py
"""
Booking Repository

Capacity accounting and conflict lookups over the bookings table. Only
bookings in a non-terminal status (PENDING, CONFIRMED) occupy a slot;
every count and conflict query here filters on that set.
"""

from datetime import date
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import NON_TERMINAL_STATUSES, Booking, BookingType
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def count_non_terminal(self, booking_date: date, time_slot_key: str) -> int:
        """Capacity units consumed at one slot instance."""
        try:
            return int(
                self.db.query(func.count(Booking.id))
                .filter(
                    Booking.booking_date == booking_date,
                    Booking.time_slot_key == time_slot_key,
                    Booking.status.in_(NON_TERMINAL_STATUSES),
                )
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for {booking_date}/{time_slot_key}: {e}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}") from e

    def count_non_terminal_by_slot(
        self, start_date: date, end_date: Optional[date] = None
    ) -> Dict[Tuple[date, str], int]:
        """Consumed units keyed by ``(date, slot_key)`` for every slot instance in the window."""
        end_date = end_date or start_date
        try:
            rows = (
                self.db.query(Booking.booking_date, Booking.time_slot_key, func.count(Booking.id))
                .filter(
                    Booking.booking_date >= start_date,
                    Booking.booking_date <= end_date,
                    Booking.status.in_(NON_TERMINAL_STATUSES),
                )
                .group_by(Booking.booking_date, Booking.time_slot_key)
                .all()
            )
            return {(row[0], row[1]): int(row[2]) for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error aggregating bookings {start_date}..{end_date}: {e}")
            raise RepositoryException(f"Failed to aggregate bookings: {str(e)}") from e

    def has_vehicle_conflict(self, vehicle_id: str, booking_date: date, time_slot_key: str) -> bool:
        """True when the vehicle already holds a live test drive at this slot instance."""
        try:
            return (
                self.db.query(Booking.id)
                .filter(
                    Booking.vehicle_id == vehicle_id,
                    Booking.booking_date == booking_date,
                    Booking.time_slot_key == time_slot_key,
                    Booking.booking_type == BookingType.TEST_DRIVE.value,
                    Booking.status.in_(NON_TERMINAL_STATUSES),
                )
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking vehicle conflict for {vehicle_id}: {e}")
            raise RepositoryException(f"Failed to check vehicle conflict: {str(e)}") from e

    def get_vehicle_slot_keys(
        self, vehicle_id: str, start_date: date, end_date: Optional[date] = None
    ) -> Set[Tuple[date, str]]:
        """Slot instances where the vehicle is already out on a test drive."""
        end_date = end_date or start_date
        try:
            rows = (
                self.db.query(Booking.booking_date, Booking.time_slot_key)
                .filter(
                    Booking.vehicle_id == vehicle_id,
                    Booking.booking_date >= start_date,
                    Booking.booking_date <= end_date,
                    Booking.booking_type == BookingType.TEST_DRIVE.value,
                    Booking.status.in_(NON_TERMINAL_STATUSES),
                )
                .all()
            )
            return {(row[0], row[1]) for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading vehicle bookings for {vehicle_id}: {e}")
            raise RepositoryException(f"Failed to load vehicle bookings: {str(e)}") from e

    def count_templates_in_use(self, time_slot_key: str, from_date: date) -> int:
        """Live bookings on or after ``from_date`` that reference a template."""
        try:
            return int(
                self.db.query(func.count(Booking.id))
                .filter(
                    Booking.time_slot_key == time_slot_key,
                    Booking.booking_date >= from_date,
                    Booking.status.in_(NON_TERMINAL_STATUSES),
                )
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting template usage for {time_slot_key}: {e}")
            raise RepositoryException(f"Failed to count template usage: {str(e)}") from e

    def insert_bookings(self, rows: Sequence[Mapping[str, Any]]) -> List[Booking]:
        """
        Stage every row and flush once.

        Either all rows reach the database on commit or none do; the caller
        owns the transaction.
        """
        try:
            bookings = [Booking(**dict(row)) for row in rows]
            self.db.add_all(bookings)
            self.db.flush()
            return bookings
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting {len(rows)} booking rows: {e}")
            raise RepositoryException(f"Failed to insert bookings: {str(e)}") from e

    def get_booking_with_details(self, booking_id: str) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .options(joinedload(Booking.vehicle), joinedload(Booking.service_type))
                .filter(Booking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id}: {e}")
            raise RepositoryException(f"Failed to load booking: {str(e)}") from e
