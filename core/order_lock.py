"""Duplicate-submission guard for order-form creation.

A lock is a JSON record in session storage keyed by booking id. An inflight
lock younger than the TTL blocks a second submission; a finished lock that
cached its order forms also blocks, and the caller reuses the cache.
"""
import json
import logging
import time
from typing import Callable, List, Optional

from store.storage import KeyValueStorage

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "order_form_lock:"
LOCK_TTL_SECONDS = 30.0


class OrderFormLock:
    def __init__(
        self,
        storage: KeyValueStorage,
        ttl: float = LOCK_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.ttl = ttl
        self._clock = clock

    def _key(self, booking_id: str) -> str:
        return LOCK_KEY_PREFIX + booking_id

    def _read(self, booking_id: str) -> Optional[dict]:
        key = self._key(booking_id)
        raw = self.storage.get_item(key)
        if not raw:
            return None
        try:
            lock = json.loads(raw)
            if not isinstance(lock, dict) or "status" not in lock or "timestamp" not in lock:
                raise ValueError("malformed lock")
            return lock
        except ValueError:
            self.storage.remove_item(key)
            return None

    def acquire(self, booking_id: str) -> bool:
        """Take the lock. Returns False if a request is already inflight or results are cached."""
        lock = self._read(booking_id)
        if lock:
            age = self._clock() - lock["timestamp"]
            if lock["status"] == "inflight" and age < self.ttl:
                logger.info("Order form lock held for %s (age %.1fs), skipping duplicate", booking_id, age)
                return False
            if lock["status"] == "done" and lock.get("order_forms"):
                logger.info("Order form lock for %s has cached results", booking_id)
                return False

        self.storage.set_item(
            self._key(booking_id),
            json.dumps({"status": "inflight", "timestamp": self._clock()}),
        )
        return True

    def release(self, booking_id: str, order_forms: Optional[List[dict]] = None) -> None:
        """Mark the call finished; pass the forms on success to cache them."""
        status = "done" if order_forms else "failed"
        self.storage.set_item(
            self._key(booking_id),
            json.dumps({"status": status, "timestamp": self._clock(), "order_forms": order_forms}),
        )
        logger.info("Order form lock released for %s (%s)", booking_id, status)

    def get_cached_order_forms(self, booking_id: str) -> Optional[List[dict]]:
        lock = self._read(booking_id)
        if lock and lock["status"] == "done" and lock.get("order_forms"):
            return lock["order_forms"]
        return None

    def is_inflight(self, booking_id: str) -> bool:
        lock = self._read(booking_id)
        if not lock:
            return False
        return lock["status"] == "inflight" and self._clock() - lock["timestamp"] < self.ttl

    def clear(self, booking_id: str) -> None:
        self.storage.remove_item(self._key(booking_id))

    def clear_all(self) -> int:
        stale = [k for k in self.storage.keys() if k.startswith(LOCK_KEY_PREFIX)]
        for key in stale:
            self.storage.remove_item(key)
        if stale:
            logger.info("Cleared %d stale order form lock(s)", len(stale))
        return len(stale)
