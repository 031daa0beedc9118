"""WorldOTA (RateHawk) B2B API, real API integration.

HTTP Basic auth with key_id:api_key. Credentials come from settings and are
never logged.
"""
import json
import logging
from typing import List, Optional

import httpx

from core.config import settings
from core.orders import voucher_error_body
from providers.base import (
    BaseSupplierProvider,
    SupplierNotConfiguredError,
    UpstreamError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


def _body(resp: httpx.Response):
    try:
        return resp.json()
    except ValueError:
        return {"error": resp.text}


class WorldOtaSupplierProvider(BaseSupplierProvider):
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        key_id: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self._client = client
        self._key_id = settings.worldota_key_id if key_id is None else key_id
        self._api_key = settings.worldota_api_key if api_key is None else api_key
        self._base_url = (base_url or settings.worldota_base_url).rstrip("/")
        if self._key_id and not self._key_id.isdigit():
            logger.warning("WorldOTA key id does not look numeric; check the key id and api key are not swapped")

    @property
    def is_configured(self) -> bool:
        return bool(self._key_id and self._api_key)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if not self.is_configured:
            raise SupplierNotConfiguredError("WorldOTA credentials not configured")

        url = f"{self._base_url}{path}"
        auth = httpx.BasicAuth(self._key_id, self._api_key)
        timeout = settings.worldota_timeout_seconds
        try:
            if self._client is not None:
                resp = await self._client.request(method, url, auth=auth, timeout=timeout, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    resp = await client.request(method, url, auth=auth, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError(f"WorldOTA {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(f"WorldOTA {path} request failed: {exc}") from exc

        logger.debug("WorldOTA %s %s → %d", method, path, resp.status_code)
        if resp.status_code >= 500:
            raise UpstreamUnavailableError(f"WorldOTA {path} returned {resp.status_code}", status_code=resp.status_code)
        return resp

    async def _post_json(self, path: str, payload: dict) -> dict:
        resp = await self._request("POST", path, json=payload)
        if resp.status_code >= 400:
            logger.error("WorldOTA %s error: %d", path, resp.status_code)
            raise UpstreamError(resp.status_code, _body(resp))
        return resp.json()

    async def filter_values(self) -> dict:
        data = await self._post_json("/api/content/v1/filter_values", {})
        return data.get("data") or {}

    async def hotel_info(self, hid: int, language: str = "en") -> dict:
        data = await self._post_json("/api/b2b/v3/hotel/info/", {"hid": hid, "language": language})
        return data.get("data") or {}

    async def order_info(self, order_id: str, language: str = "en") -> List[dict]:
        payload = {
            "ordering": {"ordering_type": "desc", "ordering_by": "created_at"},
            "pagination": {"page_size": "1", "page_number": "1"},
            "search": {"order_id": [int(order_id)] if str(order_id).isdigit() else [order_id]},
            "language": language,
        }
        data = await self._post_json("/api/b2b/v3/hotel/order/info/", payload)
        return (data.get("data") or {}).get("orders") or []

    async def cancel_order(self, order_id: str, reason: Optional[str] = None, language: str = "en") -> dict:
        payload = {"order_id": order_id, "language": language}
        if reason:
            payload["reason"] = reason
        return await self._post_json("/api/b2b/v3/hotel/order/cancel/", payload)

    async def download_voucher(self, partner_order_id: str, language: str = "en") -> bytes:
        query = json.dumps({"partner_order_id": partner_order_id, "language": language})
        resp = await self._request(
            "GET", "/api/b2b/v3/hotel/order/document/voucher/download/", params={"data": query}
        )
        if "application/pdf" in resp.headers.get("content-type", ""):
            logger.info("Downloaded voucher for %s (%d bytes)", partner_order_id, len(resp.content))
            return resp.content

        error_data = _body(resp)
        status = resp.status_code if resp.status_code >= 400 else 400
        raise UpstreamError(status, voucher_error_body(error_data))
