"""Base provider ABCs for the hotel search backend and the supplier B2B API."""
from abc import ABC, abstractmethod
from typing import Any, List, Optional


class UpstreamError(Exception):
    """Upstream answered with a client error; the body is returned to the caller as-is."""

    def __init__(self, status_code: int, body: Any):
        super().__init__(f"Upstream returned {status_code}")
        self.status_code = status_code
        self.body = body


class UpstreamUnavailableError(Exception):
    """Upstream timed out, was unreachable, or answered 5xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SupplierNotConfiguredError(Exception):
    pass


class BaseSearchProvider(ABC):
    """Hotel search engine: autocomplete and availability searches."""

    @abstractmethod
    async def destinations(self, query: str) -> dict:
        """Return {"regions": [...], "hotels": [...]} suggestions."""

    @abstractmethod
    async def search_region(self, params: dict) -> dict:
        pass

    @abstractmethod
    async def search_geo(self, params: dict) -> dict:
        pass

    @abstractmethod
    async def search_poi(self, params: dict) -> dict:
        pass


class BaseSupplierProvider(ABC):
    """Supplier B2B API: static content, filter values and post-booking order operations."""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def filter_values(self) -> dict:
        pass

    @abstractmethod
    async def hotel_info(self, hid: int, language: str = "en") -> dict:
        pass

    @abstractmethod
    async def order_info(self, order_id: str, language: str = "en") -> List[dict]:
        """Return the matching orders; an empty list means not found."""

    @abstractmethod
    async def cancel_order(self, order_id: str, reason: Optional[str] = None, language: str = "en") -> dict:
        pass

    @abstractmethod
    async def download_voucher(self, partner_order_id: str, language: str = "en") -> bytes:
        """Return the voucher PDF bytes."""
