from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator


def _as_str(v):
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(int(v))
    return v


# ── Search proxy ──────────────────────────────────────────────────────────────

class DestinationRequest(BaseModel):
    query: str = ""


class RegionSearchRequest(BaseModel):
    """Forwarded to the search backend as-is; only the region key is checked."""
    destination: Optional[str] = None
    region_id: Optional[Union[int, str]] = Field(
        None,
        validation_alias=AliasChoices("regionId", "region_id"),
        serialization_alias="regionId",
    )

    model_config = {"extra": "allow"}


class NearbySearchRequest(BaseModel):
    checkin: Optional[str] = None
    checkout: Optional[str] = None
    guests: Optional[Any] = None
    radius: Optional[int] = None
    residency: Optional[str] = None
    currency: Optional[str] = None


class GeoSearchRequest(NearbySearchRequest):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PoiSearchRequest(NearbySearchRequest):
    poi_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("poiName", "poi_name"),
        serialization_alias="poiName",
    )


class EnrichRequest(BaseModel):
    mode: str = ""
    trace_id: Optional[str] = Field(None, validation_alias=AliasChoices("traceId", "trace_id"))
    hotel_ids: List[Union[int, str]] = Field(
        default_factory=list, validation_alias=AliasChoices("hotelIds", "hotel_ids")
    )

    @model_validator(mode="before")
    @classmethod
    def unwrap_body(cls, data):
        # Some callers wrap the payload as {"body": {...}}
        if isinstance(data, dict) and isinstance(data.get("body"), dict):
            return data["body"]
        return data


# ── Supplier proxy ────────────────────────────────────────────────────────────

class HotelInfoRequest(BaseModel):
    hid: Optional[Union[int, str]] = None
    language: str = "en"


class OrderInfoRequest(BaseModel):
    order_id: str
    language: str = "en"

    @field_validator("order_id", mode="before")
    @classmethod
    def coerce_order_id(cls, v):
        return _as_str(v)


class OrderCancelRequest(OrderInfoRequest):
    reason: Optional[str] = None


class VoucherRequest(BaseModel):
    partner_order_id: str
    language: str = "en"

    @field_validator("partner_order_id", mode="before")
    @classmethod
    def coerce_partner_order_id(cls, v):
        return _as_str(v)


# ── Bookings ──────────────────────────────────────────────────────────────────

class BookingRead(BaseModel):
    id: str
    order_id: str
    partner_order_id: Optional[str] = None
    status: str
    confirmation_number: Optional[str] = None
    hotel_name: Optional[str] = None
    hotel_city: Optional[str] = None
    hotel_country: Optional[str] = None
    check_in_date: date
    check_out_date: date
    nights: Optional[int] = None
    lead_guest_name: Optional[str] = None
    amount: Optional[float] = None
    currency_code: Optional[str] = None
    is_cancellable: Optional[bool] = None
    free_cancellation_before: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    payment_type: Optional[str] = None
    payment_status: Optional[str] = None
    rooms_data: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ── Reporting ─────────────────────────────────────────────────────────────────

class ReportingBookingOut(BaseModel):
    id: str
    order_id: str
    status: str
    lead_guest: str
    guest_email: str
    hotel: str
    city: str
    country: str
    check_in: date
    check_out: date
    nights: int
    room_type: str
    client_total: float
    supplier_total: float
    margin: float
    margin_percent: int
    currency: str
    payment_type: str
    payment_status: str
    cancellation_policy: str
    cancellation_deadline: Optional[datetime] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None


class BookingStatsOut(BaseModel):
    total_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    processing_bookings: int
    total_revenue: float
    total_margin: float
    currency: str
    pipeline: List[Dict[str, Any]] = []


class InvoiceOut(BaseModel):
    id: str
    group_name: str
    client_name: str
    bookings_count: int
    booking_ids: List[str]
    total_due: float
    currency: str
    due_date: str
    status: str
    payment_link_status: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None


class RevenueMetricsOut(BaseModel):
    gross_sales: float
    supplier_cost: float
    margin: float
    margin_percent: float
    cancellation_losses: float
    currency: str


class RevenueByCityOut(BaseModel):
    city: str
    country: str
    bookings_count: int
    revenue: float
    margin: float
    currency: str


class RevenueByAgentOut(BaseModel):
    agent_id: str
    agent_name: str
    bookings_count: int
    revenue: float
    margin: float
    currency: str


class TopHotelOut(BaseModel):
    hotel_name: str
    city: str
    bookings_count: int
    revenue: float
    margin: float
    margin_percent: float
    currency: str


class HighCancellationHotelOut(BaseModel):
    hotel_name: str
    city: str
    bookings_count: int
    cancellations: int
    cancellation_rate: float
    lost_revenue: float
    currency: str


class RevenueReportOut(BaseModel):
    metrics: RevenueMetricsOut
    revenue_by_city: List[RevenueByCityOut]
    revenue_by_agent: List[RevenueByAgentOut]
    top_hotels: List[TopHotelOut]
    high_cancellation_hotels: List[HighCancellationHotelOut]


class PaymentEntryOut(BaseModel):
    id: str
    date: datetime
    type: str
    amount: float
    currency: str
    method: str
    reference: str
    reference_type: str
    status: str
    description: str


class PaymentTotalsOut(BaseModel):
    total_payments: float
    total_refunds: float
    total_adjustments: float
    net_total: float
    currency: str


class PaymentsOut(BaseModel):
    payments: List[PaymentEntryOut]
    totals: PaymentTotalsOut
