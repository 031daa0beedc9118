"""Supplier filter values (countries, languages, search filters, hotel kinds) with an in-process cache."""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)

STAR_RATINGS = [1, 2, 3, 4, 5]

DEFAULT_FILTER_VALUES = {
    "countries": [
        {"value": "US", "desc": "United States"},
        {"value": "GB", "desc": "United Kingdom"},
        {"value": "DE", "desc": "Germany"},
        {"value": "FR", "desc": "France"},
        {"value": "ES", "desc": "Spain"},
        {"value": "IT", "desc": "Italy"},
        {"value": "AU", "desc": "Australia"},
        {"value": "CA", "desc": "Canada"},
        {"value": "AE", "desc": "United Arab Emirates"},
        {"value": "SA", "desc": "Saudi Arabia"},
    ],
    "languages": [{"value": "en", "desc": "English"}],
    "serp_filters": [
        {"value": "has_wifi", "desc": "Wi-Fi"},
        {"value": "has_internet", "desc": "Internet"},
        {"value": "has_parking", "desc": "Parking"},
        {"value": "has_pool", "desc": "Pool"},
        {"value": "has_fitness", "desc": "Fitness"},
        {"value": "has_spa", "desc": "Spa"},
        {"value": "has_meal_breakfast", "desc": "Breakfast"},
        {"value": "is_pet_friendly", "desc": "Pet Friendly"},
        {"value": "has_airport_transfer", "desc": "Airport Transfer"},
    ],
    "hotel_kinds": [
        {"value": "Hotel", "desc": "Hotel"},
        {"value": "Apart-hotel", "desc": "Apart-Hotel"},
        {"value": "Guesthouse", "desc": "Guesthouse"},
        {"value": "Hostel", "desc": "Hostel"},
        {"value": "Resort", "desc": "Resort"},
        {"value": "Villa", "desc": "Villa"},
        {"value": "Apartment", "desc": "Apartment"},
        {"value": "Motel", "desc": "Motel"},
        {"value": "B&B", "desc": "Bed & Breakfast"},
    ],
    "star_ratings": STAR_RATINGS,
}


def normalize_filter_values(raw: dict) -> dict:
    return {
        "countries": raw.get("countries") or [],
        "languages": raw.get("languages") or [],
        "serp_filters": raw.get("serp_filters") or [],
        "hotel_kinds": raw.get("hotel_kinds") or [],
        "star_ratings": STAR_RATINGS,
    }


class FilterValuesCache:
    """Single-entry cache; one per process, shared by all requests."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: Optional[dict] = None
        self._expires_at = 0.0

    def get(self) -> Optional[dict]:
        if self._data is not None and self._expires_at > self._clock():
            return self._data
        return None

    def set(self, data: dict) -> None:
        self._data = data
        self._expires_at = self._clock() + self.ttl_seconds
        logger.info("Cached filter values for %.0fh", self.ttl_seconds / 3600)

    @property
    def expires_at(self) -> Optional[str]:
        if self._data is None:
            return None
        return datetime.fromtimestamp(self._expires_at, tz=timezone.utc).isoformat()

    def clear(self) -> None:
        self._data = None
        self._expires_at = 0.0
