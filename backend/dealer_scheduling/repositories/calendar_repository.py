# backend/dealer_scheduling/repositories/calendar_repository.py
"""
Calendar Repository

Data access for slot templates and holidays. Reads here back both the
display path (availability) and the admission path, so every query is a
plain indexed lookup with deterministic ordering.
"""

from datetime import date, time
import logging
from typing import List, Optional

from sqlalchemy import extract, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.calendar import Holiday, TimeSlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CalendarRepository(BaseRepository[TimeSlot]):
    """Repository for TimeSlot templates, with Holiday helpers alongside."""

    def __init__(self, db: Session):
        super().__init__(db, TimeSlot)
        self.logger = logging.getLogger(__name__)

    # Time slot templates

    def get_active_templates(self, day_of_week: Optional[int] = None) -> List[TimeSlot]:
        """
        Active templates ordered by start time, ties broken by id.

        Args:
            day_of_week: 0 = Sunday ... 6 = Saturday; None returns every weekday
        """
        try:
            query = self.db.query(TimeSlot).filter(TimeSlot.is_active.is_(True))
            if day_of_week is not None:
                query = query.filter(TimeSlot.day_of_week == day_of_week)
            return query.order_by(TimeSlot.day_of_week, TimeSlot.start_time, TimeSlot.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading active templates: {str(e)}")
            raise RepositoryException(f"Failed to load time slots: {str(e)}") from e

    def list_templates(
        self, day_of_week: Optional[int] = None, include_inactive: bool = False
    ) -> List[TimeSlot]:
        if not include_inactive:
            return self.get_active_templates(day_of_week)
        try:
            query = self.db.query(TimeSlot)
            if day_of_week is not None:
                query = query.filter(TimeSlot.day_of_week == day_of_week)
            return query.order_by(TimeSlot.day_of_week, TimeSlot.start_time, TimeSlot.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing templates: {str(e)}")
            raise RepositoryException(f"Failed to list time slots: {str(e)}") from e

    def find_duplicate_template(
        self,
        day_of_week: int,
        start_time: time,
        end_time: time,
        exclude_id: Optional[str] = None,
    ) -> Optional[TimeSlot]:
        """Another template with identical weekday and hours, if any."""
        try:
            query = self.db.query(TimeSlot).filter(
                TimeSlot.day_of_week == day_of_week,
                TimeSlot.start_time == start_time,
                TimeSlot.end_time == end_time,
            )
            if exclude_id:
                query = query.filter(TimeSlot.id != exclude_id)
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking duplicate template: {str(e)}")
            raise RepositoryException(f"Failed to check time slots: {str(e)}") from e

    # Holidays

    def get_holiday(self, holiday_id: str) -> Optional[Holiday]:
        try:
            return self.db.get(Holiday, holiday_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting holiday {holiday_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve holiday: {str(e)}") from e

    def get_all_holidays(self) -> List[Holiday]:
        try:
            return self.db.query(Holiday).order_by(Holiday.date, Holiday.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading holidays: {str(e)}")
            raise RepositoryException(f"Failed to load holidays: {str(e)}") from e

    def get_holidays_matching(self, target: date) -> List[Holiday]:
        """Fixed holidays on ``target`` plus recurring holidays sharing its month and day."""
        try:
            return (
                self.db.query(Holiday)
                .filter(
                    or_(
                        Holiday.date == target,
                        (Holiday.is_recurring.is_(True))
                        & (extract("month", Holiday.date) == target.month)
                        & (extract("day", Holiday.date) == target.day),
                    )
                )
                .order_by(Holiday.is_recurring, Holiday.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error matching holidays for {target}: {str(e)}")
            raise RepositoryException(f"Failed to check holidays: {str(e)}") from e

    def list_holidays(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Holiday]:
        """
        Holidays relevant to a window.

        Fixed holidays are filtered by date; recurring holidays always apply
        and are returned regardless of the window.
        """
        try:
            query = self.db.query(Holiday)
            if start is not None or end is not None:
                fixed = Holiday.is_recurring.is_(False)
                if start is not None:
                    fixed = fixed & (Holiday.date >= start)
                if end is not None:
                    fixed = fixed & (Holiday.date <= end)
                query = query.filter(or_(Holiday.is_recurring.is_(True), fixed))
            return query.order_by(Holiday.date, Holiday.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing holidays: {str(e)}")
            raise RepositoryException(f"Failed to list holidays: {str(e)}") from e

    def create_holiday(self, **kwargs) -> Holiday:
        try:
            holiday = Holiday(**kwargs)
            self.db.add(holiday)
            self.db.flush()
            return holiday
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating holiday: {str(e)}")
            raise RepositoryException(f"Failed to create holiday: {str(e)}") from e

    def delete_holiday(self, holiday: Holiday) -> None:
        try:
            self.db.delete(holiday)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting holiday {holiday.id}: {str(e)}")
            raise RepositoryException(f"Failed to delete holiday: {str(e)}") from e
