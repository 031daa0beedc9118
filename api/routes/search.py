import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import DestinationRequest, EnrichRequest, GeoSearchRequest, PoiSearchRequest, RegionSearchRequest
from core import proxy
from core.config import APP_VERSION
from core.enrichment import enrich_with_static_data, static_data_by_id
from db.database import get_db
from providers.base import BaseSearchProvider
from providers.factory import search_provider

router = APIRouter(prefix="/proxy", tags=["search"])
logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
EMPTY_DESTINATIONS = {"regions": [], "hotels": []}
EMPTY_SEARCH = {"hotels": [], "totalHotels": 0}


@router.get("/destination")
@router.get("/search")
@router.get("/search/geo")
@router.get("/search/poi")
@router.get("/enrich")
async def liveness():
    return {"ok": True}


@router.post("/destination")
async def destination(body: DestinationRequest, provider: BaseSearchProvider = Depends(search_provider)):
    query = body.query.strip()
    if len(query) < MIN_QUERY_LENGTH:
        return proxy.ok(dict(EMPTY_DESTINATIONS))

    logger.info("Destination lookup for %r", query)
    return await proxy.proxy_call(
        "destination", lambda: provider.destinations(query), empty=dict(EMPTY_DESTINATIONS)
    )


@router.post("/search")
async def search_region(
    body: RegionSearchRequest,
    provider: BaseSearchProvider = Depends(search_provider),
    db: AsyncSession = Depends(get_db),
):
    if not body.destination and body.region_id is None:
        return proxy.validation_error("destination or regionId is required")

    started = time.monotonic()
    params = body.model_dump(by_alias=True, exclude_none=True)
    logger.info("Region search: destination=%s regionId=%s", body.destination, body.region_id)

    async def fetch():
        data = await provider.search_region(params)
        hotels = data.get("hotels")
        if isinstance(hotels, list) and hotels:
            data["hotels"] = await enrich_with_static_data(db, hotels)
        return data

    return await proxy.proxy_call("search", fetch, empty=dict(EMPTY_SEARCH), started=started)


@router.post("/search/geo")
async def search_geo(body: GeoSearchRequest, provider: BaseSearchProvider = Depends(search_provider)):
    if body.latitude is None or body.longitude is None:
        return proxy.validation_error("latitude and longitude are required")

    logger.info("Geo search at [%s, %s] radius=%s", body.latitude, body.longitude, body.radius or "default")
    params = body.model_dump(exclude_none=True)
    return await proxy.proxy_call("search/geo", lambda: provider.search_geo(params), empty=dict(EMPTY_SEARCH))


@router.post("/search/poi")
async def search_poi(body: PoiSearchRequest, provider: BaseSearchProvider = Depends(search_provider)):
    if not body.poi_name:
        return proxy.validation_error("poiName is required")

    logger.info("POI search for %r", body.poi_name)
    params = body.model_dump(by_alias=True, exclude_none=True)
    return await proxy.proxy_call("search/poi", lambda: provider.search_poi(params), empty=dict(EMPTY_SEARCH))


@router.post("/enrich")
async def enrich(body: EnrichRequest, db: AsyncSession = Depends(get_db)):
    if body.mode.strip().lower() == "ping":
        return {"ok": True, "version": f"enrich-{APP_VERSION}", "now": datetime.now(timezone.utc).isoformat()}

    logger.debug("Enrich request for %d ids (trace %s)", len(body.hotel_ids), body.trace_id or "none")

    async def fetch():
        return {"byHotelId": await static_data_by_id(db, body.hotel_ids)}

    return await proxy.proxy_call("enrich", fetch, empty={"byHotelId": {}})
