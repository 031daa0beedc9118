"""Provider factory: returns Mock or Real providers based on USE_REAL_APIS."""
import os
from typing import Union

from providers.base import BaseSearchProvider, BaseSupplierProvider


def get_provider(domain: str) -> Union[BaseSearchProvider, BaseSupplierProvider]:
    """Return the active provider for the given domain ("search" or "supplier").

    Reads USE_REAL_APIS env var. Returns MockProvider by default.
    """
    use_real = os.environ.get("USE_REAL_APIS", "false").lower() == "true"

    if domain == "search":
        if use_real:
            from providers.real.travelapi import TravelApiSearchProvider
            return TravelApiSearchProvider()
        from providers.mock.search_provider import MockSearchProvider
        return MockSearchProvider()

    elif domain == "supplier":
        if use_real:
            from providers.real.worldota import WorldOtaSupplierProvider
            return WorldOtaSupplierProvider()
        from providers.mock.supplier_provider import MockSupplierProvider
        return MockSupplierProvider()

    else:
        raise ValueError(f"Unknown domain: {domain}")


# FastAPI dependencies; tests override these with providers on a mock transport.

def search_provider() -> BaseSearchProvider:
    return get_provider("search")


def supplier_provider() -> BaseSupplierProvider:
    return get_provider("supplier")
