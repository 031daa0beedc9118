from providers.base import BaseSearchProvider

_REGIONS = [
    {"id": 2114, "name": "Dubai", "country_code": "AE", "type": "City"},
    {"id": 2734, "name": "London", "country_code": "GB", "type": "City"},
    {"id": 2563, "name": "Paris", "country_code": "FR", "type": "City"},
]

_HOTELS = [
    {
        "id": "mock_grand_hotel",
        "name": "Mock Grand Hotel",
        "star_rating": 5,
        "price": 250.00,
        "currency": "USD",
        "rates": [{"book_hash": "h-mock-grand-1", "room_name": "Deluxe King", "price": 250.00, "meal": "breakfast"}],
    },
    {
        "id": "budget_inn",
        "name": "Budget Inn",
        "star_rating": 3,
        "price": 79.99,
        "currency": "USD",
        "rates": [{"book_hash": "h-budget-1", "room_name": "Standard Double", "price": 79.99, "meal": "nomeal"}],
    },
]


class MockSearchProvider(BaseSearchProvider):
    async def destinations(self, query: str) -> dict:
        needle = query.strip().lower()
        return {
            "regions": [r for r in _REGIONS if needle in r["name"].lower()],
            "hotels": [
                {"id": h["id"], "name": h["name"]} for h in _HOTELS if needle in h["name"].lower()
            ],
        }

    async def search_region(self, params: dict) -> dict:
        location = params.get("destination") or "Mock City"
        hotels = [{**h, "location": location} for h in _HOTELS]
        return {"hotels": hotels, "totalHotels": len(hotels), "hasMore": False}

    async def search_geo(self, params: dict) -> dict:
        return {"hotels": list(_HOTELS), "totalHotels": len(_HOTELS), "radius": params.get("radius") or 5000}

    async def search_poi(self, params: dict) -> dict:
        return {"hotels": list(_HOTELS), "totalHotels": len(_HOTELS), "poi": params.get("poiName")}
