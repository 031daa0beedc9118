"""Hotel search backend, real API integration.

A thin JSON API in front of the supplier's search endpoints. Each call has
its own bounded timeout; 5xx answers, timeouts and transport failures are
raised as UpstreamUnavailableError, 4xx answers as UpstreamError.
"""
import logging
from typing import Optional

import httpx

from core.config import settings
from providers.base import BaseSearchProvider, UpstreamError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_METERS = 5000
DEFAULT_RESIDENCY = "us"
DEFAULT_CURRENCY = "USD"

_REGION_NOT_FOUND_MARKERS = ("Could not find region", "Destination not found")


def _body(resp: httpx.Response):
    try:
        return resp.json()
    except ValueError:
        return {"error": resp.text}


class TravelApiSearchProvider(BaseSearchProvider):
    def __init__(self, client: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None):
        self._client = client
        self._base_url = (base_url or settings.travelapi_base_url).rstrip("/")

    async def _post(self, path: str, payload: dict, timeout: float) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                resp = await self._client.post(url, json=payload, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    resp = await client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError(f"{path} timed out after {timeout:.0f}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(f"{path} request failed: {exc}") from exc

        logger.debug("Search backend %s → %d", path, resp.status_code)
        if resp.status_code >= 500:
            raise UpstreamUnavailableError(f"{path} returned {resp.status_code}", status_code=resp.status_code)
        return resp

    async def _post_json(self, path: str, payload: dict, timeout: float) -> dict:
        resp = await self._post(path, payload, timeout)
        if resp.status_code >= 400:
            raise UpstreamError(resp.status_code, _body(resp))
        return resp.json()

    async def destinations(self, query: str) -> dict:
        data = await self._post_json(
            "/api/destination", {"query": query}, settings.destination_timeout_seconds
        )
        return {"regions": data.get("regions") or [], "hotels": data.get("hotels") or []}

    async def search_region(self, params: dict) -> dict:
        resp = await self._post("/api/ratehawk/search", params, settings.region_search_timeout_seconds)
        if any(marker in resp.text for marker in _REGION_NOT_FOUND_MARKERS):
            raise UpstreamError(400, {"error": "Destination not available", "hotels": [], "totalHotels": 0})
        if resp.status_code >= 400:
            raise UpstreamError(resp.status_code, _body(resp))
        return resp.json()

    def _nearby_payload(self, params: dict) -> dict:
        payload = dict(params)
        payload["radius"] = params.get("radius") or DEFAULT_RADIUS_METERS
        payload["residency"] = params.get("residency") or DEFAULT_RESIDENCY
        payload["currency"] = params.get("currency") or DEFAULT_CURRENCY
        return payload

    async def search_geo(self, params: dict) -> dict:
        return await self._post_json(
            "/api/ratehawk/search/by-geo", self._nearby_payload(params), settings.geo_search_timeout_seconds
        )

    async def search_poi(self, params: dict) -> dict:
        return await self._post_json(
            "/api/ratehawk/search/by-poi", self._nearby_payload(params), settings.geo_search_timeout_seconds
        )
