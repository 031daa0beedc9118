"""Attach static hotel content to search results.

Search results carry a slug id ("royal_palm_tower") but often no supplier
hid, so hotels are matched to the static table by name: exact normalized
name, then containment either way, then at least two shared words longer
than two characters.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import HotelDumpData

logger = logging.getLogger(__name__)

STATIC_LOOKUP_LIMIT = 1000
MAX_ENRICH_IDS = 200

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def slug_to_name(slug: str) -> str:
    return " ".join(word.capitalize() for word in slug.replace("_", " ").split())


def normalize_name(name: str) -> str:
    return _SPACES.sub(" ", _NON_ALNUM.sub("", name.lower())).strip()


def _significant_words(name: str) -> set:
    return {w for w in name.split(" ") if len(w) > 2}


def find_match(name: str, candidates: Dict[str, HotelDumpData]) -> Optional[HotelDumpData]:
    normalized = normalize_name(name)
    if not normalized:
        return None
    if normalized in candidates:
        return candidates[normalized]

    words = _significant_words(normalized)
    for db_name, row in candidates.items():
        if db_name in normalized or normalized in db_name:
            return row
        if len(words & _significant_words(db_name)) >= 2:
            return row
    return None


def static_payload(row: HotelDumpData) -> dict:
    return {
        "name": row.name,
        "address": row.address,
        "city": row.city,
        "country": row.country,
        "star_rating": row.star_rating,
        "images": [],
        "coordinates": {"lat": row.latitude, "lon": row.longitude},
        "amenities": row.amenities or [],
        "description": row.description,
        "check_in_time": row.check_in_time,
        "check_out_time": row.check_out_time,
    }


def merge_static(hotels: List[dict], rows: Iterable[HotelDumpData]) -> List[dict]:
    candidates = {normalize_name(r.name): r for r in rows if r.name}
    if not candidates:
        return hotels

    enriched = []
    matched = 0
    for hotel in hotels:
        name = hotel.get("name") or slug_to_name(str(hotel.get("id") or ""))
        row = find_match(name, candidates) if name else None
        if row is None:
            enriched.append(hotel)
            continue
        matched += 1
        enriched.append({**hotel, "hid": row.hid, "static_data": static_payload(row)})

    logger.info("Matched %d/%d hotels by name", matched, len(hotels))
    return enriched


def _region_name(hotels: List[dict]) -> Optional[str]:
    first = hotels[0]
    region = first.get("location") or (first.get("region") or {}).get("name")
    if region and region != "Unknown":
        return region
    return None


async def enrich_with_static_data(db: AsyncSession, hotels: List[dict]) -> List[dict]:
    """Best effort: on a database error the hotels are returned unchanged."""
    if not hotels:
        return hotels

    query = select(HotelDumpData).limit(STATIC_LOOKUP_LIMIT)
    region = _region_name(hotels)
    if region:
        query = query.where(HotelDumpData.city.ilike(f"%{region}%"))

    try:
        rows = (await db.execute(query)).scalars().all()
    except SQLAlchemyError as exc:
        logger.warning("Static hotel lookup failed, returning unenriched results: %s", exc)
        return hotels
    return merge_static(hotels, rows)


async def static_data_by_id(db: AsyncSession, hotel_ids: Iterable) -> Dict[str, dict]:
    """Look up static content for up to MAX_ENRICH_IDS distinct hotel ids."""
    unique_ids = list(dict.fromkeys(str(h) for h in hotel_ids if h))[:MAX_ENRICH_IDS]
    if not unique_ids:
        return {}
    result = await db.execute(select(HotelDumpData).where(HotelDumpData.hotel_id.in_(unique_ids)))
    by_id = {row.hotel_id: static_payload(row) for row in result.scalars()}
    logger.info("Enrich returned %d/%d matches", len(by_id), len(unique_ids))
    return by_id
