"""Tests for the order-form duplicate submission guard."""
import json

from core.order_lock import LOCK_KEY_PREFIX, OrderFormLock
from store.storage import MemoryStorage


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _lock(storage=None, clock=None) -> OrderFormLock:
    return OrderFormLock(storage or MemoryStorage(), ttl=30.0, clock=clock or FakeClock())


def test_second_acquire_blocked_while_inflight():
    lock = _lock()
    assert lock.acquire("b1") is True
    assert lock.acquire("b1") is False
    assert lock.is_inflight("b1") is True
    # other bookings are independent
    assert lock.acquire("b2") is True


def test_inflight_lock_expires_after_ttl():
    clock = FakeClock()
    lock = _lock(clock=clock)
    lock.acquire("b1")
    clock.now += 31
    assert lock.is_inflight("b1") is False
    assert lock.acquire("b1") is True


def test_done_lock_with_forms_blocks_and_serves_cache():
    lock = _lock()
    lock.acquire("b1")
    forms = [{"order_id": 1, "item_id": 2}]
    lock.release("b1", forms)

    assert lock.acquire("b1") is False
    assert lock.get_cached_order_forms("b1") == forms


def test_failed_release_allows_retry():
    lock = _lock()
    lock.acquire("b1")
    lock.release("b1")
    assert lock.get_cached_order_forms("b1") is None
    assert lock.acquire("b1") is True


def test_corrupt_entry_discarded():
    storage = MemoryStorage({LOCK_KEY_PREFIX + "b1": "{oops", LOCK_KEY_PREFIX + "b2": json.dumps([1])})
    lock = _lock(storage)
    assert lock.is_inflight("b1") is False
    assert storage.get_item(LOCK_KEY_PREFIX + "b1") is None
    assert lock.acquire("b2") is True


def test_clear_and_clear_all():
    storage = MemoryStorage({"unrelated": "x"})
    lock = _lock(storage)
    lock.acquire("b1")
    lock.acquire("b2")
    lock.acquire("b3")

    lock.clear("b1")
    assert lock.is_inflight("b1") is False
    assert lock.clear_all() == 2
    assert list(storage.keys()) == ["unrelated"]
