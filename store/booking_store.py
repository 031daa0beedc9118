"""Booking state store: current search, results, room selection and booking attempt.

All mutations are synchronous and notify subscribers in registration order.
There is no locking; the last write wins.
"""
import json
import logging
import random
import string
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from store.storage import KeyValueStorage
from store.types import (
    DEFAULT_SORT,
    SORT_OPTIONS,
    RoomSelection,
    SearchFilters,
    SearchParams,
    SearchType,
    SelectedUpsell,
    SortOption,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "booking-storage"
STORAGE_VERSION = 2
DISPLAY_BATCH_SIZE = 20

Listener = Callable[["BookingStore"], None]


class BookingStore:
    """Application-context object holding the agent's in-progress booking."""

    def __init__(self):
        self._listeners: List[Listener] = []
        self._init_state()

    def _init_state(self) -> None:
        self.search_params: Optional[SearchParams] = None
        self.search_results: List[dict] = []
        self.raw_search_results: List[dict] = []
        self.enriched_hotels: Dict[str, dict] = {}
        self.selected_hotel: Optional[dict] = None
        self.selected_rooms: List[RoomSelection] = []
        self.selected_upsells: List[SelectedUpsell] = []
        self.error: Optional[str] = None
        self.has_more_results = False
        self.current_page = 1
        self.total_results = 0
        self.displayed_count = 0

        self.search_type: SearchType = "region"
        self.filters = SearchFilters()
        self.sort_by: SortOption = DEFAULT_SORT
        self.residency = "US"

        # Booking attempt
        self.booking_hash: Optional[str] = None
        self.partner_order_id: Optional[str] = None
        self.order_id: Optional[str] = None
        self.item_id: Optional[str] = None
        self.order_group_id: Optional[str] = None
        self.order_status = "idle"
        self.payment_type: Optional[str] = None

    # ── Subscriptions ──────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ── Search ─────────────────────────────────────────────────────────────────

    def set_search_params(self, params: SearchParams) -> None:
        self.search_params = params
        self.current_page = 1
        self._notify()

    def set_search_results(self, results: List[dict], has_more: bool = False, total: int = 0) -> None:
        self.search_results = list(results)
        self.has_more_results = has_more
        self.total_results = total or len(results)
        self.current_page = 1
        self.displayed_count = len(results)
        self._notify()

    def set_raw_search_results(self, results: List[dict], total: int = 0) -> None:
        """Keep every upstream hotel and display only the first batch."""
        first_batch = list(results[:DISPLAY_BATCH_SIZE])
        self.raw_search_results = list(results)
        self.search_results = first_batch
        self.total_results = total or len(results)
        self.displayed_count = len(first_batch)
        self.has_more_results = len(results) > DISPLAY_BATCH_SIZE
        self.current_page = 1
        self._notify()

    def get_next_batch_to_display(self) -> List[dict]:
        start = self.displayed_count
        return self.raw_search_results[start:start + DISPLAY_BATCH_SIZE]

    def append_to_displayed(self, hotels: List[dict]) -> None:
        self.search_results = self.search_results + list(hotels)
        self.displayed_count = len(self.search_results)
        self.has_more_results = self.displayed_count < len(self.raw_search_results)
        self._notify()

    def set_enriched_hotels(self, hotels: List[dict]) -> None:
        for hotel in hotels:
            self.enriched_hotels[str(hotel["id"])] = hotel
        self._notify()

    def set_selected_hotel(self, hotel: Optional[dict]) -> None:
        self.selected_hotel = hotel
        self._notify()

    def set_search_type(self, search_type: SearchType) -> None:
        self.search_type = search_type
        self._notify()

    def set_error(self, error: Optional[str]) -> None:
        self.error = error
        self._notify()

    # ── Filters & sort ─────────────────────────────────────────────────────────

    def set_filters(self, **changes: Any) -> None:
        """Merge the given fields into the current filters."""
        self.filters = self.filters.merged(**changes)
        self._notify()

    def reset_filters(self) -> None:
        self.filters = SearchFilters()
        self._notify()

    def set_sort_by(self, sort_by: SortOption) -> None:
        if sort_by not in SORT_OPTIONS:
            raise ValueError(f"Unknown sort option: {sort_by}")
        self.sort_by = sort_by
        self._notify()

    def set_residency(self, residency: str) -> None:
        self.residency = residency
        self._notify()

    def get_active_filter_count(self) -> int:
        f = self.filters
        groups = [
            f.price_min is not None or f.price_max is not None,
            bool(f.star_ratings),
            f.free_cancellation_only,
            f.refundable_only,
            bool(f.meal_plans),
            bool(f.amenities),
            bool(f.payment_types),
            f.rate_type is not None,
            bool(f.room_types),
            bool(f.bed_types),
            bool(f.hotel_kinds),
            f.early_check_in or f.late_check_out,
        ]
        return sum(1 for active in groups if active)

    # ── Room lines ─────────────────────────────────────────────────────────────

    def _find_room(self, room_id: str) -> Optional[int]:
        for idx, line in enumerate(self.selected_rooms):
            if line.room_id == room_id:
                return idx
        return None

    def add_room(self, room: RoomSelection) -> None:
        """Add a room line; an already selected room id accumulates quantity instead."""
        idx = self._find_room(room.room_id)
        if idx is None:
            self.selected_rooms = self.selected_rooms + [room]
        else:
            existing = self.selected_rooms[idx]
            quantity = existing.quantity + room.quantity
            updated = list(self.selected_rooms)
            updated[idx] = replace(
                existing, quantity=quantity, total_price=quantity * existing.price_per_room
            )
            self.selected_rooms = updated
        self._notify()

    def remove_room(self, room_id: str) -> None:
        self.selected_rooms = [r for r in self.selected_rooms if r.room_id != room_id]
        self.selected_upsells = [u for u in self.selected_upsells if u.room_id != room_id]
        self._notify()

    def update_room_quantity(self, room_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_room(room_id)
            return
        self.selected_rooms = [
            replace(r, quantity=quantity, total_price=quantity * r.price_per_room)
            if r.room_id == room_id else r
            for r in self.selected_rooms
        ]
        self._notify()

    def clear_room_selection(self) -> None:
        self.selected_rooms = []
        self.selected_upsells = []
        self._notify()

    # ── Upsells ────────────────────────────────────────────────────────────────

    def add_upsell(self, upsell: SelectedUpsell) -> None:
        if any(u.id == upsell.id and u.room_id == upsell.room_id for u in self.selected_upsells):
            return
        self.selected_upsells = self.selected_upsells + [upsell]
        self._notify()

    def remove_upsell(self, upsell_id: str, room_id: str) -> None:
        self.selected_upsells = [
            u for u in self.selected_upsells
            if not (u.id == upsell_id and u.room_id == room_id)
        ]
        self._notify()

    def clear_upsells(self) -> None:
        self.selected_upsells = []
        self._notify()

    def get_upsells_for_room(self, room_id: str) -> List[SelectedUpsell]:
        return [u for u in self.selected_upsells if u.room_id == room_id]

    # ── Derived values ─────────────────────────────────────────────────────────

    def get_total_price(self) -> float:
        """Sum of quantity * price_per_room over the current room lines."""
        return sum(r.quantity * r.price_per_room for r in self.selected_rooms)

    def get_total_upsells_price(self) -> float:
        return sum(u.price for u in self.selected_upsells)

    def get_grand_total(self) -> float:
        return self.get_total_price() + self.get_total_upsells_price()

    def get_total_rooms(self) -> int:
        return sum(r.quantity for r in self.selected_rooms)

    def is_multiroom_booking(self) -> bool:
        return self.get_total_rooms() > 1 or len(self.selected_rooms) > 1

    # ── Booking attempt ────────────────────────────────────────────────────────

    def generate_partner_order_id(self) -> str:
        suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
        self.partner_order_id = f"BK-{int(time.time() * 1000)}-{suffix}"
        self._notify()
        return self.partner_order_id

    def set_order_status(self, status: str) -> None:
        self.order_status = status
        self._notify()

    def clear_booking_attempt_state(self) -> None:
        """Drop transient order identifiers; partner_order_id is kept for reuse."""
        self.booking_hash = None
        self.order_id = None
        self.item_id = None
        self.order_group_id = None
        self.order_status = "idle"
        self._notify()

    def clear_booking_state(self) -> None:
        self.partner_order_id = None
        self.payment_type = None
        self.clear_booking_attempt_state()

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def clear_search(self) -> None:
        """New search: drop params, results and selection but keep filters and sort."""
        self.search_params = None
        self.search_results = []
        self.raw_search_results = []
        self.enriched_hotels = {}
        self.selected_hotel = None
        self.selected_rooms = []
        self.selected_upsells = []
        self.error = None
        self.has_more_results = False
        self.current_page = 1
        self.total_results = 0
        self.displayed_count = 0
        self._notify()

    def reset(self) -> None:
        """Logout: everything back to its initial value."""
        self._init_state()
        self._notify()

    # ── Persistence ────────────────────────────────────────────────────────────

    def to_persisted(self) -> dict:
        """Only the small, user-chosen fields persist; results are refetched."""
        return {
            "version": STORAGE_VERSION,
            "state": {
                "search_params": self.search_params.to_dict() if self.search_params else None,
                "search_type": self.search_type,
                "filters": self.filters.to_dict(),
                "sort_by": self.sort_by,
                "residency": self.residency,
            },
        }

    def load_persisted(self, payload: dict) -> None:
        state = _migrate(payload.get("state") or {}, int(payload.get("version", 0)))

        params = state.get("search_params")
        try:
            self.search_params = SearchParams.from_dict(params) if params else None
        except (KeyError, ValueError) as exc:
            logger.warning("Dropping unreadable persisted search params: %s", exc)
            self.search_params = None

        self.search_type = state.get("search_type") or "region"
        self.filters = SearchFilters.from_dict(state.get("filters") or {})
        sort_by = state.get("sort_by")
        self.sort_by = sort_by if sort_by in SORT_OPTIONS else DEFAULT_SORT
        self.residency = state.get("residency") or "US"
        self._notify()

    def save(self, storage: KeyValueStorage) -> None:
        storage.set_item(STORAGE_KEY, json.dumps(self.to_persisted()))

    def restore(self, storage: KeyValueStorage) -> bool:
        """Load persisted state. Returns False when nothing usable was stored."""
        raw = storage.get_item(STORAGE_KEY)
        if not raw:
            return False
        try:
            payload = json.loads(raw)
        except ValueError:
            payload = None
        if not isinstance(payload, dict) or not isinstance(payload.get("state") or {}, dict):
            logger.warning("Discarding corrupt %s entry", STORAGE_KEY)
            storage.remove_item(STORAGE_KEY)
            return False
        self.load_persisted(payload)
        return True


def _migrate(state: dict, version: int) -> dict:
    if version < 2:
        # v1 stored partial filter dicts; fill in fields added since.
        merged = SearchFilters().to_dict()
        merged.update(state.get("filters") or {})
        state = {**state, "filters": merged}
    return state
