"""Two-way binding between the booking store and a shareable query string."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Protocol
from urllib.parse import parse_qs, urlencode

from store.booking_store import BookingStore
from store.types import DEFAULT_SORT, SORT_OPTIONS, SearchFilters, SearchParams, SortOption

logger = logging.getLogger(__name__)

URL_PARAMS = {
    # Search params
    "destination": "dest",
    "destination_id": "destId",
    "check_in": "checkIn",
    "check_out": "checkOut",
    "guests": "guests",
    "rooms": "rooms",
    "children": "children",
    "children_ages": "ages",
    # Filters
    "star_ratings": "stars",
    "price_min": "priceMin",
    "price_max": "priceMax",
    "meal_plans": "meals",
    "amenities": "amenities",
    "free_cancellation_only": "freeCancellation",
    "residency": "residency",
    # Sort
    "sort_by": "sort",
}

DEFAULT_DEBOUNCE_SECONDS = 0.1


@dataclass
class ParsedSearch:
    destination: str = ""
    destination_id: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: int = 2
    rooms: int = 1
    children: int = 0
    children_ages: list = field(default_factory=list)

    @property
    def has_search_params(self) -> bool:
        return bool(self.destination and self.destination_id and self.check_in and self.check_out)

    def to_search_params(self) -> SearchParams:
        return SearchParams(
            destination=self.destination,
            destination_id=self.destination_id,
            check_in=self.check_in,
            check_out=self.check_out,
            guests=self.guests,
            rooms=self.rooms,
            children=self.children,
            children_ages=list(self.children_ages),
        )


def _first(qs: dict, key: str) -> Optional[str]:
    values = qs.get(key)
    return values[0] if values else None


def _as_int(raw: Optional[str], default: int) -> int:
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _as_date(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def _int_list(raw: str) -> List[int]:
    out = []
    for part in raw.split(","):
        try:
            out.append(int(part))
        except ValueError:
            continue
    return out


def _parse(query: str) -> dict:
    return parse_qs(query.lstrip("?"), keep_blank_values=False)


def parse_search_params(query: str) -> ParsedSearch:
    qs = _parse(query)
    ages = _first(qs, URL_PARAMS["children_ages"])
    return ParsedSearch(
        destination=_first(qs, URL_PARAMS["destination"]) or "",
        destination_id=_first(qs, URL_PARAMS["destination_id"]) or None,
        check_in=_as_date(_first(qs, URL_PARAMS["check_in"])),
        check_out=_as_date(_first(qs, URL_PARAMS["check_out"])),
        guests=_as_int(_first(qs, URL_PARAMS["guests"]), 2),
        rooms=_as_int(_first(qs, URL_PARAMS["rooms"]), 1),
        children=_as_int(_first(qs, URL_PARAMS["children"]), 0),
        children_ages=_int_list(ages) if ages else [],
    )


def parse_filters(query: str) -> dict:
    """Return only the filter fields present in the query."""
    qs = _parse(query)
    filters: dict = {}

    stars = _first(qs, URL_PARAMS["star_ratings"])
    if stars:
        filters["star_ratings"] = _int_list(stars)

    for name in ("price_min", "price_max"):
        raw = _first(qs, URL_PARAMS[name])
        if raw:
            try:
                filters[name] = int(raw)
            except ValueError:
                pass

    meals = _first(qs, URL_PARAMS["meal_plans"])
    if meals:
        filters["meal_plans"] = meals.split(",")

    amenities = _first(qs, URL_PARAMS["amenities"])
    if amenities:
        filters["amenities"] = amenities.split(",")

    if _first(qs, URL_PARAMS["free_cancellation_only"]) == "true":
        filters["free_cancellation_only"] = True

    residency = _first(qs, URL_PARAMS["residency"])
    if residency:
        filters["residency"] = residency

    return filters


def parse_sort(query: str) -> Optional[SortOption]:
    sort = _first(_parse(query), URL_PARAMS["sort_by"])
    if sort in SORT_OPTIONS:
        return sort
    return None


def build_query(
    search_params: Optional[SearchParams],
    filters: SearchFilters,
    sort_by: SortOption = DEFAULT_SORT,
) -> str:
    """Serialize state to a query string; defaults are left out."""
    params: List[tuple] = []

    if search_params:
        if search_params.destination:
            params.append((URL_PARAMS["destination"], search_params.destination))
        if search_params.destination_id:
            params.append((URL_PARAMS["destination_id"], search_params.destination_id))
        if search_params.check_in:
            params.append((URL_PARAMS["check_in"], search_params.check_in.isoformat()))
        if search_params.check_out:
            params.append((URL_PARAMS["check_out"], search_params.check_out.isoformat()))
        if search_params.guests:
            params.append((URL_PARAMS["guests"], str(search_params.guests)))
        if search_params.rooms:
            params.append((URL_PARAMS["rooms"], str(search_params.rooms)))
        if search_params.children and search_params.children > 0:
            params.append((URL_PARAMS["children"], str(search_params.children)))
        if search_params.children_ages:
            params.append((URL_PARAMS["children_ages"], ",".join(map(str, search_params.children_ages))))

    if filters.star_ratings:
        params.append((URL_PARAMS["star_ratings"], ",".join(map(str, filters.star_ratings))))
    if filters.price_min is not None:
        params.append((URL_PARAMS["price_min"], str(filters.price_min)))
    if filters.price_max is not None:
        params.append((URL_PARAMS["price_max"], str(filters.price_max)))
    if filters.meal_plans:
        params.append((URL_PARAMS["meal_plans"], ",".join(filters.meal_plans)))
    if filters.amenities:
        params.append((URL_PARAMS["amenities"], ",".join(filters.amenities)))
    if filters.free_cancellation_only:
        params.append((URL_PARAMS["free_cancellation_only"], "true"))
    if filters.residency and filters.residency != "US":
        params.append((URL_PARAMS["residency"], filters.residency))

    if sort_by != DEFAULT_SORT:
        params.append((URL_PARAMS["sort_by"], sort_by))

    return urlencode(params)


# ── History binding ──────────────────────────────────────────────────────────

class History(Protocol):
    @property
    def query(self) -> str: ...

    def replace(self, query: str) -> None: ...


class MemoryHistory:
    """In-process history stack; replace() rewrites the current entry."""

    def __init__(self, query: str = ""):
        self.entries: List[str] = [query.lstrip("?")]

    @property
    def query(self) -> str:
        return self.entries[-1]

    def push(self, query: str) -> None:
        self.entries.append(query.lstrip("?"))

    def replace(self, query: str) -> None:
        self.entries[-1] = query.lstrip("?")


class URLSync:
    """Restore the store from the query once, then mirror store changes back into it."""

    def __init__(self, store: BookingStore, history: History, debounce: float = DEFAULT_DEBOUNCE_SECONDS):
        self.store = store
        self.history = history
        self.debounce = debounce
        self._mounted = False
        self._updating_from_url = False
        self._pending: Optional[asyncio.TimerHandle] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def mount(self) -> bool:
        """Apply the current query to the store. Returns True if a search was restored."""
        if self._mounted:
            return False
        self._mounted = True

        query = self.history.query
        parsed = parse_search_params(query)
        restored = False

        if parsed.has_search_params:
            self._updating_from_url = True
            try:
                self.store.set_search_params(parsed.to_search_params())
                parsed_filters = parse_filters(query)
                if parsed_filters:
                    self.store.set_filters(**parsed_filters)
                parsed_sort = parse_sort(query)
                if parsed_sort:
                    self.store.set_sort_by(parsed_sort)
                restored = True
            finally:
                self._updating_from_url = False
            logger.debug("Restored search for %s from URL", parsed.destination)

        self._unsubscribe = self.store.subscribe(self._on_store_change)
        return restored

    def unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        if self._pending:
            self._pending.cancel()
            self._pending = None

    def _on_store_change(self, _store: BookingStore) -> None:
        if self._updating_from_url:
            return
        if self._pending:
            self._pending.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.update_url()
            return
        self._pending = loop.call_later(self.debounce, self.update_url)

    def update_url(self) -> None:
        self._pending = None
        if self._updating_from_url:
            return
        new_query = build_query(self.store.search_params, self.store.filters, self.store.sort_by)
        if new_query != self.history.query:
            self.history.replace(new_query)

    def shareable_url(self, base_url: str) -> str:
        query = build_query(self.store.search_params, self.store.filters, self.store.sort_by)
        return f"{base_url}?{query}" if query else base_url
