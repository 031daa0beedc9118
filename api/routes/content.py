import logging
import time
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import HotelInfoRequest
from core import proxy
from core.config import settings
from core.filter_values import DEFAULT_FILTER_VALUES, FilterValuesCache, normalize_filter_values
from core.hotel_content import build_hotel_info, empty_hotel_info, extract_description
from db.database import get_db
from db.models import HotelStaticCache
from providers.base import BaseSupplierProvider
from providers.factory import supplier_provider

router = APIRouter(prefix="/proxy", tags=["content"])
logger = logging.getLogger(__name__)

filter_values_cache = FilterValuesCache(ttl_seconds=settings.filter_values_cache_hours * 3600)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ── Filter values ──────────────────────────────────────────────────────────────

@router.get("/filter-values")
@router.get("/hotel-info")
async def liveness():
    return {"ok": True}


@router.post("/filter-values")
async def filter_values(provider: BaseSupplierProvider = Depends(supplier_provider)):
    cached = filter_values_cache.get()
    if cached is not None:
        return proxy.ok(cached, cached=True, expires_at=filter_values_cache.expires_at)

    if not provider.is_configured:
        logger.warning("Supplier credentials missing, serving default filter values")
        return proxy.ok(dict(DEFAULT_FILTER_VALUES), cached=False, fallback=True)

    started = time.monotonic()

    async def fetch():
        data = normalize_filter_values(await provider.filter_values())
        filter_values_cache.set(data)
        return proxy.ok(data, started, cached=False, expires_at=filter_values_cache.expires_at)

    return await proxy.proxy_call(
        "filter-values", fetch, empty=dict(DEFAULT_FILTER_VALUES), started=started
    )


# ── Hotel static content ───────────────────────────────────────────────────────

async def _cached_hotel_info(db: AsyncSession, hotel_id: str, language: str):
    result = await db.execute(
        select(HotelStaticCache).where(
            HotelStaticCache.hotel_id == hotel_id,
            HotelStaticCache.language == language,
        )
    )
    return result.scalar_one_or_none()


async def _store_hotel_info(db: AsyncSession, entry, hotel_id: str, language: str, data: dict,
                            description, now: datetime) -> None:
    cache_row = entry or HotelStaticCache(hotel_id=hotel_id, language=language)
    cache_row.description = description
    cache_row.raw_data = data
    cache_row.expires_at = now + timedelta(days=settings.hotel_info_cache_days)
    if entry is None:
        db.add(cache_row)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        # A concurrent first fetch may have inserted the same (hotel_id, language) row.
        await db.rollback()
        logger.warning("Failed to cache hotel info for %s/%s: %s", hotel_id, language, exc)
        return
    logger.info("Cached hotel info for %s/%s", hotel_id, language)


@router.post("/hotel-info")
async def hotel_info(
    body: HotelInfoRequest,
    provider: BaseSupplierProvider = Depends(supplier_provider),
    db: AsyncSession = Depends(get_db),
):
    try:
        hid = int(str(body.hid))
    except ValueError:
        hid = 0
    if hid <= 0:
        return proxy.validation_error("Invalid hotel ID (hid)")

    started = time.monotonic()
    hotel_id = str(hid)
    entry = await _cached_hotel_info(db, hotel_id, body.language)
    now = datetime.now(timezone.utc)

    if entry and _aware(entry.expires_at) > now:
        logger.debug("Hotel info cache hit for %s/%s", hotel_id, body.language)
        hotel = build_hotel_info(hid, entry.raw_data or {}, description=entry.description)
        return proxy.ok(hotel, started, cached=True)

    async def fetch():
        data = await provider.hotel_info(hid, body.language)
        description = extract_description(data)
        await _store_hotel_info(db, entry, hotel_id, body.language, data, description, now)
        return proxy.ok(build_hotel_info(hid, data, description=description), started, cached=False)

    return await proxy.proxy_call("hotel-info", fetch, empty=empty_hotel_info(hid), started=started)
