"""
In-process serialization of admission per slot instance.

Every ``(date, slot_key)`` gets its own ``threading.Lock`` created on first
use and discarded once no thread holds or waits for it. Admissions against
different slot instances never contend with each other.

Cross-process serialization on PostgreSQL is layered on top by
``SlotLockRepository`` inside the admission transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
import time
from typing import Dict, Iterator, Tuple

from ..monitoring.prometheus_metrics import prometheus_metrics
from .exceptions import SlotLockTimeoutException

logger = logging.getLogger(__name__)

SlotId = Tuple[date, str]


def _lock_key(slot_date: date, slot_key: str) -> SlotId:
    return (slot_date, slot_key)


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class SlotLockRegistry:
    """Reference-counted map of per-slot locks."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[SlotId, _Entry] = {}

    def acquire(self, slot_date: date, slot_key: str, timeout: float) -> bool:
        key = _lock_key(slot_date, slot_key)
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.refs += 1

        started = time.perf_counter()
        acquired = entry.lock.acquire(timeout=timeout)
        waited = time.perf_counter() - started

        if not acquired:
            self._unref(key)
            prometheus_metrics.record_slot_lock("process", "timeout", waited)
            logger.warning(
                "slot_lock_timeout",
                extra={
                    "slot_date": slot_date.isoformat(),
                    "slot_key": slot_key,
                    "waited_seconds": round(waited, 4),
                },
            )
            return False

        prometheus_metrics.record_slot_lock("process", "acquired", waited)
        return True

    def release(self, slot_date: date, slot_key: str) -> None:
        key = _lock_key(slot_date, slot_key)
        with self._guard:
            entry = self._entries.get(key)
        if entry is None:
            raise RuntimeError(f"slot lock {slot_date}/{slot_key} is not held")
        entry.lock.release()
        self._unref(key)

    def _unref(self, key: SlotId) -> None:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                return
            entry.refs -= 1
            if entry.refs <= 0:
                del self._entries[key]

    def tracked_count(self) -> int:
        """Number of slot instances currently held or waited on."""
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, slot_date: date, slot_key: str, timeout: float) -> Iterator[None]:
        if not self.acquire(slot_date, slot_key, timeout):
            raise SlotLockTimeoutException(slot_date.isoformat(), slot_key, timeout)
        try:
            yield
        finally:
            self.release(slot_date, slot_key)


slot_lock_registry = SlotLockRegistry()

