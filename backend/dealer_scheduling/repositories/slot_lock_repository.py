# backend/dealer_scheduling/repositories/slot_lock_repository.py
"""
Row locks that serialize admission across processes sharing PostgreSQL.

The lock row for a slot instance is upserted, then selected FOR UPDATE
with a bounded ``lock_timeout``. The row lock lasts until the admission
transaction commits or rolls back. Other dialects rely on the in-process
registry alone.
"""

from datetime import date
import logging
import time

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException, SlotLockTimeoutException
from ..models.slot_lock import SlotLock
from ..monitoring.prometheus_metrics import prometheus_metrics
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

# SQLSTATE lock_not_available
_LOCK_NOT_AVAILABLE = "55P03"


class SlotLockRepository(BaseRepository[SlotLock]):
    def __init__(self, db: Session):
        super().__init__(db, SlotLock)
        self.logger = logging.getLogger(__name__)

    @property
    def supports_row_locks(self) -> bool:
        return self.dialect_name == "postgresql"

    def lock_slot(self, slot_date: date, time_slot_key: str, timeout_seconds: float) -> bool:
        """
        Take the row lock for one slot instance inside the current transaction.

        Returns False without doing anything on dialects without row locks.
        Raises SlotLockTimeoutException when the lock is not granted in time.
        """
        if not self.supports_row_locks:
            return False

        started = time.perf_counter()
        try:
            timeout_ms = max(1, int(timeout_seconds * 1000))
            self.db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
            self.db.execute(
                pg_insert(SlotLock)
                .values(slot_date=slot_date, time_slot_key=time_slot_key)
                .on_conflict_do_nothing(index_elements=["slot_date", "time_slot_key"])
            )
            (
                self.db.query(SlotLock.id)
                .filter(SlotLock.slot_date == slot_date, SlotLock.time_slot_key == time_slot_key)
                .with_for_update()
                .one()
            )
        except OperationalError as exc:
            waited = time.perf_counter() - started
            if getattr(exc.orig, "pgcode", None) == _LOCK_NOT_AVAILABLE:
                prometheus_metrics.record_slot_lock("row", "timeout", waited)
                raise SlotLockTimeoutException(
                    slot_date.isoformat(), time_slot_key, timeout_seconds
                ) from exc
            self.logger.error(f"Error locking slot {slot_date}/{time_slot_key}: {exc}")
            raise RepositoryException(f"Failed to lock slot: {str(exc)}") from exc
        except SQLAlchemyError as exc:
            self.logger.error(f"Error locking slot {slot_date}/{time_slot_key}: {exc}")
            raise RepositoryException(f"Failed to lock slot: {str(exc)}") from exc

        prometheus_metrics.record_slot_lock("row", "acquired", time.perf_counter() - started)
        return True
