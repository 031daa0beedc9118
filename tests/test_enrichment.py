"""Tests for static hotel content matching."""
import pytest

from core.enrichment import (
    MAX_ENRICH_IDS,
    enrich_with_static_data,
    find_match,
    merge_static,
    normalize_name,
    slug_to_name,
    static_data_by_id,
)
from db.models import HotelDumpData


def _row(hotel_id, name, city="Dubai", hid=None) -> HotelDumpData:
    return HotelDumpData(hotel_id=hotel_id, hid=hid, name=name, city=city)


def test_slug_and_normalize():
    assert slug_to_name("royal_palm_tower") == "Royal Palm Tower"
    assert normalize_name("  Hôtel  d'Angleterre! ") == "htel dangleterre"


def test_find_match_strategies():
    exact = _row("a", "Royal Palm Tower")
    contained = _row("b", "Atlantis")
    shared = _row("c", "Grand Hyatt Residence Dubai")
    candidates = {normalize_name(r.name): r for r in (exact, contained, shared)}

    assert find_match("Royal Palm Tower", candidates) is exact
    assert find_match("Atlantis The Palm", candidates) is contained
    assert find_match("Hyatt Grand Suites", candidates) is shared
    assert find_match("Budget Inn", candidates) is None
    assert find_match("!!!", candidates) is None


def test_merge_uses_slug_when_name_missing():
    hotels = [{"id": "royal_palm_tower"}, {"id": "unknown_place", "name": "Nowhere"}]
    merged = merge_static(hotels, [_row("x", "Royal Palm Tower", hid=77)])

    assert merged[0]["hid"] == 77
    assert merged[0]["static_data"]["name"] == "Royal Palm Tower"
    assert merged[1] == {"id": "unknown_place", "name": "Nowhere"}


@pytest.mark.asyncio
async def test_enrich_filters_by_region(db):
    db.add_all([_row("d1", "Royal Palm", city="Dubai", hid=1), _row("l1", "Royal Palm", city="London", hid=2)])
    await db.commit()

    hotels = await enrich_with_static_data(db, [{"id": "royal_palm", "name": "Royal Palm", "location": "London"}])
    assert hotels[0]["hid"] == 2


@pytest.mark.asyncio
async def test_enrich_empty_list(db):
    assert await enrich_with_static_data(db, []) == []


@pytest.mark.asyncio
async def test_static_data_by_id_dedupes_and_caps(db):
    db.add_all([_row(f"h{i}", f"Hotel {i}") for i in range(MAX_ENRICH_IDS + 5)])
    await db.commit()

    ids = [f"h{i}" for i in range(MAX_ENRICH_IDS + 5)]
    by_id = await static_data_by_id(db, ["h0", "h0"] + ids + [None, ""])
    assert len(by_id) == MAX_ENRICH_IDS
    assert "h0" in by_id
    assert f"h{MAX_ENRICH_IDS}" not in by_id
