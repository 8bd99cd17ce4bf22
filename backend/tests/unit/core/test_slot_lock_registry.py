from datetime import date
import threading
import time

import pytest

from dealer_scheduling.core.exceptions import SchedulingUnavailableException, SlotLockTimeoutException
from dealer_scheduling.core.slot_lock import SlotLockRegistry

DAY = date(2025, 6, 9)


def test_lock_entries_are_discarded_after_release():
    registry = SlotLockRegistry()
    with registry.hold(DAY, "A", timeout=1):
        assert registry.tracked_count() == 1
    assert registry.tracked_count() == 0


def test_same_slot_times_out_while_held():
    registry = SlotLockRegistry()
    with registry.hold(DAY, "A", timeout=1):
        started = time.perf_counter()
        assert registry.acquire(DAY, "A", timeout=0.05) is False
        assert time.perf_counter() - started >= 0.04
        # Failed waiter leaves no extra reference behind.
        assert registry.tracked_count() == 1
    assert registry.tracked_count() == 0


def test_hold_raises_retryable_timeout():
    registry = SlotLockRegistry()
    with registry.hold(DAY, "A", timeout=1):
        with pytest.raises(SlotLockTimeoutException) as exc_info:
            with registry.hold(DAY, "A", timeout=0.01):
                pass
    assert isinstance(exc_info.value, SchedulingUnavailableException)
    assert exc_info.value.code == "SLOT_LOCK_TIMEOUT"
    assert exc_info.value.details["slot_key"] == "A"


def test_different_slots_do_not_contend():
    registry = SlotLockRegistry()
    with registry.hold(DAY, "A", timeout=1):
        assert registry.acquire(DAY, "B", timeout=0.01)
        assert registry.acquire(date(2025, 6, 10), "A", timeout=0.01)
        assert registry.tracked_count() == 3
        registry.release(DAY, "B")
        registry.release(date(2025, 6, 10), "A")


def test_waiter_gets_lock_after_release():
    registry = SlotLockRegistry()
    order = []
    registry.acquire(DAY, "A", timeout=1)

    def waiter():
        with registry.hold(DAY, "A", timeout=2):
            order.append("waiter")

    thread = threading.Thread(target=waiter)
    thread.start()
    time.sleep(0.05)
    order.append("holder")
    registry.release(DAY, "A")
    thread.join(timeout=2)

    assert order == ["holder", "waiter"]
    assert registry.tracked_count() == 0


def test_release_without_hold_is_an_error():
    with pytest.raises(RuntimeError):
        SlotLockRegistry().release(DAY, "A")

