"""Typed records held by the booking store."""
import dataclasses
from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional

SortOption = Literal[
    "popularity",
    "price-low",
    "price-high",
    "rating",
    "distance",
    "free-cancellation",
    "cheapest-rate",
]
SORT_OPTIONS: tuple = (
    "popularity",
    "price-low",
    "price-high",
    "rating",
    "distance",
    "free-cancellation",
    "cheapest-rate",
)
DEFAULT_SORT: SortOption = "popularity"

SearchType = Literal["region", "hotel", "poi", "geo", "ids"]

MEAL_PLANS = ("room-only", "breakfast", "half-board", "full-board", "all-inclusive")
PAYMENT_TYPES = ("pay-now", "pay-at-hotel", "deposit")


@dataclass
class SearchParams:
    destination: str
    check_in: date
    check_out: date
    guests: int = 2
    rooms: int = 1
    destination_id: Optional[str] = None
    children: int = 0
    children_ages: list = field(default_factory=list)

    def to_dict(self) -> dict:
        data = dataclasses.asdict(self)
        data["check_in"] = self.check_in.isoformat()
        data["check_out"] = self.check_out.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SearchParams":
        return cls(
            destination=data.get("destination", ""),
            destination_id=data.get("destination_id"),
            check_in=date.fromisoformat(data["check_in"]),
            check_out=date.fromisoformat(data["check_out"]),
            guests=int(data.get("guests", 2)),
            rooms=int(data.get("rooms", 1)),
            children=int(data.get("children", 0)),
            children_ages=list(data.get("children_ages") or []),
        )


@dataclass
class SearchFilters:
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    star_ratings: list = field(default_factory=list)
    free_cancellation_only: bool = False
    refundable_only: bool = False
    meal_plans: list = field(default_factory=list)
    amenities: list = field(default_factory=list)
    payment_types: list = field(default_factory=list)
    rate_type: Optional[str] = None  # 'net' | 'gross'
    show_net_rates: bool = True
    show_gross_rates: bool = True
    room_types: list = field(default_factory=list)
    bed_types: list = field(default_factory=list)
    hotel_kinds: list = field(default_factory=list)
    residency: str = "US"
    early_check_in: bool = False
    late_check_out: bool = False

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SearchFilters":
        """Build filters from a possibly partial or outdated dict, ignoring unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def merged(self, **changes) -> "SearchFilters":
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ValueError(f"Unknown filter field(s): {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)


@dataclass
class RoomSelection:
    room_id: str
    room_name: str
    quantity: int
    price_per_room: float
    total_price: float = 0.0
    book_hash: Optional[str] = None
    currency: Optional[str] = None
    meal: Optional[str] = None
    # 'free_cancellation' | 'partial_refund' | 'non_refundable'
    cancellation_type: Optional[str] = None

    def __post_init__(self):
        if not self.total_price:
            self.total_price = self.quantity * self.price_per_room


@dataclass
class SelectedUpsell:
    id: str
    room_id: str
    type: Literal["early_checkin", "late_checkout"]
    name: str
    price: float
    currency: str = "USD"
    new_time: Optional[str] = None
