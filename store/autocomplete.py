"""Destination autocomplete with cancel-on-keystroke lookups."""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5
MIN_QUERY_LENGTH = 2

Lookup = Callable[[str], Awaitable[List[dict]]]


async def fetch_destinations(client: httpx.AsyncClient, query: str) -> List[dict]:
    """Query /proxy/destination and flatten regions and hotels into one list."""
    resp = await client.post("/proxy/destination", json={"query": query})
    resp.raise_for_status()
    data = resp.json().get("data") or {}
    regions = [{**r, "kind": "region"} for r in data.get("regions") or []]
    hotels = [{**h, "kind": "hotel"} for h in data.get("hotels") or []]
    return regions + hotels


def fallback_suggestion(query: str) -> dict:
    return {"id": "", "name": query, "country": "Search this location", "type": "city"}


class DestinationAutocomplete:
    """Keeps at most one lookup in flight.

    Each call to search() cancels the previous pending lookup before starting
    its own, so a slow response for an old prefix can never overwrite the
    suggestions for the newer one. A superseded call returns None.
    """

    def __init__(
        self,
        lookup: Lookup,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        min_length: int = MIN_QUERY_LENGTH,
    ):
        self.lookup = lookup
        self.debounce = debounce
        self.min_length = min_length
        self.query = ""
        self.suggestions: List[dict] = []
        self.is_open = False
        self.is_loading = False
        self._task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, query: str) -> List[dict]:
        if self.debounce > 0:
            await asyncio.sleep(self.debounce)
        try:
            return await self.lookup(query)
        except Exception as exc:
            logger.warning("Destination lookup for %r failed: %s", query, exc)
            return [fallback_suggestion(query)]

    async def search(self, query: str) -> Optional[List[dict]]:
        self.cancel()
        self.query = query

        if len(query.strip()) < self.min_length:
            self.suggestions = []
            self.is_loading = False
            return []

        task = asyncio.create_task(self._run(query.strip()))
        self._task = task
        self.is_loading = True
        await asyncio.wait({task})

        if task.cancelled():
            logger.debug("Lookup for %r superseded", query)
            return None

        results = task.result()
        if self._task is task:
            self._task = None
            self.suggestions = results
            self.is_open = True
            self.is_loading = False
        return results

    def select(self, destination: dict) -> dict:
        self.cancel()
        self.query = destination.get("name", "")
        self.is_open = False
        return destination

    def reset(self) -> None:
        self.cancel()
        self.query = ""
        self.suggestions = []
        self.is_open = False
        self.is_loading = False
