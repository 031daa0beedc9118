"""Reporting projections over user_bookings rows.

Supplier cost is not stored; it is derived from the client total with a
fixed 20% markup. Revenue and margin figures count confirmed bookings only.
"""
import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from db.models import UserBooking

logger = logging.getLogger(__name__)

DEFAULT_MARKUP_PERCENT = 20
DEFAULT_CURRENCY = "USD"
INVOICE_DUE_DAYS_BEFORE_CHECKIN = 7
INVOICE_FALLBACK_DUE_DAYS = 14
TOP_N = 10
DEFAULT_AGENT_ID = "current-user"
DEFAULT_AGENT_NAME = "Current User"

_STATUS_MAP = {
    "confirmed": "confirmed",
    "pending": "processing",
    "processing": "processing",
    "cancelled": "cancelled",
    "completed": "confirmed",
    "failed": "failed",
}

_PAYMENT_TYPE_MAP = {
    "prepaid": "now_net",
    "now_net": "now_net",
    "now_gross": "now_gross",
    "deposit": "deposit",
    "hotel": "hotel",
    "pay_at_hotel": "hotel",
}

_PAYMENT_STATUS_MAP = {
    "collected": "collected",
    "paid": "collected",
    "completed": "collected",
    "not_collected": "not_collected",
    "pending": "not_collected",
    "pay_at_property": "pay_at_property",
}


@dataclass
class ReportingBooking:
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
    cancellation_deadline: Optional[datetime]
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    agent_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ReportingFilters:
    search: Optional[str] = None
    statuses: List[str] = field(default_factory=list)
    payment_types: List[str] = field(default_factory=list)
    payment_statuses: List[str] = field(default_factory=list)
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    date_mode: str = "created"  # created | checkin | checkout


# ── Row mapping ─────────────────────────────────────────────────────────────

def map_status(status: Optional[str]) -> str:
    return _STATUS_MAP.get(status or "", "processing")


def map_payment_type(payment_type: Optional[str]) -> str:
    return _PAYMENT_TYPE_MAP.get(payment_type or "", "now_net")


def map_payment_status(payment_status: Optional[str], payment_type: Optional[str]) -> str:
    if payment_type in ("hotel", "pay_at_hotel"):
        return "pay_at_property"
    return _PAYMENT_STATUS_MAP.get(payment_status or "", "not_collected")


def supplier_cost(client_total: float, markup_percent: int = DEFAULT_MARKUP_PERCENT) -> float:
    return round(client_total / (1 + markup_percent / 100), 2)


def room_type(rooms_data) -> str:
    if isinstance(rooms_data, list) and rooms_data:
        first = rooms_data[0] or {}
        return first.get("roomName") or first.get("room_name") or "Standard Room"
    return "Standard Room"


def _cancellation_policy(row: UserBooking) -> str:
    if row.free_cancellation_before:
        deadline = row.free_cancellation_before
        return f"Free cancellation until {deadline:%b} {deadline.day}, {deadline.year}"
    policies = row.cancellation_policies
    if isinstance(policies, list) and policies and policies[0].get("description"):
        return policies[0]["description"]
    return "Check with hotel for cancellation policy"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on DateTime(timezone=True) columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_reporting_booking(row: UserBooking) -> ReportingBooking:
    client_total = float(row.amount or 0)
    supplier_total = supplier_cost(client_total)
    margin = round(client_total - supplier_total, 2)
    nights = row.nights or (row.check_out_date - row.check_in_date).days

    return ReportingBooking(
        id=row.partner_order_id or row.id,
        order_id=row.order_id,
        status=map_status(row.status),
        lead_guest=row.lead_guest_name or "Guest",
        guest_email=row.lead_guest_email or "",
        hotel=row.hotel_name or "Unknown Hotel",
        city=row.hotel_city or "",
        country=row.hotel_country or "",
        check_in=row.check_in_date,
        check_out=row.check_out_date,
        nights=nights,
        room_type=room_type(row.rooms_data),
        client_total=client_total,
        supplier_total=supplier_total,
        margin=margin,
        margin_percent=round(margin / client_total * 100) if client_total > 0 else 0,
        currency=row.currency_code or DEFAULT_CURRENCY,
        payment_type=map_payment_type(row.payment_type),
        payment_status=map_payment_status(row.payment_status, row.payment_type),
        cancellation_policy=_cancellation_policy(row),
        cancellation_deadline=_as_utc(row.free_cancellation_before),
        created_at=_as_utc(row.created_at) or datetime.now(timezone.utc),
        confirmed_at=_as_utc(row.updated_at) if row.status == "confirmed" else None,
        agent_id=row.user_id,
    )


# ── Filtering ───────────────────────────────────────────────────────────────

def _matches_search(booking: ReportingBooking, search: str) -> bool:
    needle = search.lower()
    haystack = (booking.id, booking.order_id, booking.lead_guest, booking.hotel, booking.city)
    return any(needle in (value or "").lower() for value in haystack)


def _date_for_mode(booking: ReportingBooking, mode: str) -> date:
    if mode == "checkin":
        return booking.check_in
    if mode == "checkout":
        return booking.check_out
    return booking.created_at.date()


def filter_bookings(bookings: Iterable[ReportingBooking], filters: ReportingFilters) -> List[ReportingBooking]:
    result = []
    for booking in bookings:
        if filters.search and not _matches_search(booking, filters.search):
            continue
        if filters.statuses and booking.status not in filters.statuses:
            continue
        if filters.payment_types and booking.payment_type not in filters.payment_types:
            continue
        if filters.payment_statuses and booking.payment_status not in filters.payment_statuses:
            continue
        if filters.date_from and filters.date_to:
            value = _date_for_mode(booking, filters.date_mode)
            if value < filters.date_from or value > filters.date_to:
                continue
        result.append(booking)
    return result


# ── Aggregates ──────────────────────────────────────────────────────────────

def _primary_currency(currencies: Iterable[str]) -> str:
    counts = Counter(currencies)
    return counts.most_common(1)[0][0] if counts else DEFAULT_CURRENCY


def booking_stats(bookings: List[ReportingBooking]) -> dict:
    """Counts by status; revenue and margin summed over confirmed bookings."""
    confirmed = [b for b in bookings if b.status == "confirmed"]
    primary_currency = _primary_currency(b.currency for b in bookings)

    return {
        "total_bookings": len(bookings),
        "confirmed_bookings": len(confirmed),
        "cancelled_bookings": sum(1 for b in bookings if b.status == "cancelled"),
        "processing_bookings": sum(1 for b in bookings if b.status == "processing"),
        "total_revenue": round(sum(b.client_total for b in confirmed), 2),
        "total_margin": round(sum(b.margin for b in confirmed), 2),
        "currency": primary_currency,
    }


# ── Revenue ─────────────────────────────────────────────────────────────────

def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0.0


def revenue_metrics(bookings: List[ReportingBooking]) -> dict:
    """Headline figures. Sales, cost and margin count confirmed bookings; cancelled totals are losses."""
    confirmed = [b for b in bookings if b.status == "confirmed"]
    gross_sales = sum(b.client_total for b in confirmed)
    margin = sum(b.margin for b in confirmed)
    return {
        "gross_sales": round(gross_sales, 2),
        "supplier_cost": round(sum(b.supplier_total for b in confirmed), 2),
        "margin": round(margin, 2),
        "margin_percent": _percent(margin, gross_sales),
        "cancellation_losses": round(sum(b.client_total for b in bookings if b.status == "cancelled"), 2),
        "currency": _primary_currency(b.currency for b in bookings),
    }


def _group_confirmed(bookings: List[ReportingBooking], key: Callable, describe: Callable) -> List[dict]:
    groups: Dict[Any, dict] = {}
    for booking in bookings:
        if booking.status != "confirmed":
            continue
        group_key = key(booking)
        if group_key not in groups:
            groups[group_key] = {**describe(booking), "bookings_count": 0, "revenue": 0.0, "margin": 0.0}
        group = groups[group_key]
        group["bookings_count"] += 1
        group["revenue"] += booking.client_total
        group["margin"] += booking.margin
    for group in groups.values():
        group["revenue"] = round(group["revenue"], 2)
        group["margin"] = round(group["margin"], 2)
    return list(groups.values())


def revenue_by_city(bookings: List[ReportingBooking], currency: str) -> List[dict]:
    rows = _group_confirmed(
        bookings,
        key=lambda b: (b.city or "Unknown", b.country or "Unknown"),
        describe=lambda b: {"city": b.city or "Unknown", "country": b.country or "Unknown"},
    )
    rows.sort(key=lambda row: row["revenue"], reverse=True)
    return [{**row, "currency": currency} for row in rows[:TOP_N]]


def revenue_by_agent(
    bookings: List[ReportingBooking], currency: str, agent_names: Optional[Dict[str, str]] = None
) -> List[dict]:
    agent_names = agent_names or {}
    rows = _group_confirmed(
        bookings,
        key=lambda b: b.agent_id or DEFAULT_AGENT_ID,
        describe=lambda b: {
            "agent_id": b.agent_id or DEFAULT_AGENT_ID,
            "agent_name": agent_names.get(b.agent_id) or DEFAULT_AGENT_NAME,
        },
    )
    rows.sort(key=lambda row: row["revenue"], reverse=True)
    return [{**row, "currency": currency} for row in rows]


def top_hotels(bookings: List[ReportingBooking], currency: str) -> List[dict]:
    """Confirmed bookings grouped by hotel name, best margin first."""
    rows = _group_confirmed(
        bookings,
        key=lambda b: b.hotel,
        describe=lambda b: {"hotel_name": b.hotel, "city": b.city or "Unknown"},
    )
    rows.sort(key=lambda row: row["margin"], reverse=True)
    return [
        {**row, "margin_percent": _percent(row["margin"], row["revenue"]), "currency": currency}
        for row in rows[:TOP_N]
    ]


def high_cancellation_hotels(bookings: List[ReportingBooking], currency: str) -> List[dict]:
    stats: Dict[str, dict] = {}
    for booking in bookings:
        entry = stats.setdefault(booking.hotel, {
            "hotel_name": booking.hotel,
            "city": booking.city or "Unknown",
            "bookings_count": 0,
            "cancellations": 0,
            "lost_revenue": 0.0,
        })
        entry["bookings_count"] += 1
        if booking.status == "cancelled":
            entry["cancellations"] += 1
            entry["lost_revenue"] += booking.client_total

    rows = [
        {
            **entry,
            "cancellation_rate": _percent(entry["cancellations"], entry["bookings_count"]),
            "lost_revenue": round(entry["lost_revenue"], 2),
            "currency": currency,
        }
        for entry in stats.values()
        if entry["cancellations"] > 0
    ]
    rows.sort(key=lambda row: row["cancellation_rate"], reverse=True)
    return rows[:TOP_N]


def revenue_report(bookings: List[ReportingBooking], agent_names: Optional[Dict[str, str]] = None) -> dict:
    metrics = revenue_metrics(bookings)
    currency = metrics["currency"]
    return {
        "metrics": metrics,
        "revenue_by_city": revenue_by_city(bookings, currency),
        "revenue_by_agent": revenue_by_agent(bookings, currency, agent_names),
        "top_hotels": top_hotels(bookings, currency),
        "high_cancellation_hotels": high_cancellation_hotels(bookings, currency),
    }


def _stage(stage_id: str, name: str, bookings: List[ReportingBooking]) -> dict:
    return {
        "id": stage_id,
        "name": name,
        "count": len(bookings),
        "value": round(sum(b.client_total for b in bookings), 2),
    }


def pipeline_stages(bookings: List[ReportingBooking], today: Optional[date] = None) -> List[dict]:
    today = today or date.today()
    confirmed = [b for b in bookings if b.status == "confirmed"]
    processing = [b for b in bookings if b.status == "processing"]

    return [
        _stage("pending", "Pending", processing),
        _stage("confirmed", "Confirmed", [b for b in confirmed if b.check_in > today]),
        _stage("in_progress", "In Progress", [b for b in confirmed if b.check_in <= today <= b.check_out]),
        _stage("completed", "Completed", [b for b in confirmed if b.check_out < today]),
    ]


def invoice_status(booking: ReportingBooking, today: date) -> str:
    if booking.status == "cancelled" or booking.payment_status == "collected":
        return "paid"
    if booking.payment_status == "pay_at_property":
        return "unpaid"
    due = booking.check_in - timedelta(days=INVOICE_DUE_DAYS_BEFORE_CHECKIN)
    return "overdue" if due < today else "sent"


def build_invoices(bookings: List[ReportingBooking], today: Optional[date] = None) -> List[dict]:
    """One invoice per booking, newest first.

    Numbers follow input order (INV-<created year>-<nnn>). The due date is
    seven days before check-in, or fourteen days after creation once that
    date has passed.
    """
    today = today or date.today()
    invoices = []
    for index, booking in enumerate(bookings, start=1):
        status = invoice_status(booking, today)
        due = booking.check_in - timedelta(days=INVOICE_DUE_DAYS_BEFORE_CHECKIN)
        if due <= today:
            due = booking.created_at.date() + timedelta(days=INVOICE_FALLBACK_DUE_DAYS)

        if status == "paid":
            link_status = None
        else:
            link_status = "expired" if status == "overdue" else "active"

        invoices.append({
            "id": f"INV-{booking.created_at.year}-{index:03d}",
            "group_name": booking.hotel or "Direct Booking",
            "client_name": booking.lead_guest,
            "bookings_count": 1,
            "booking_ids": [booking.order_id],
            "total_due": booking.client_total,
            "currency": booking.currency,
            "due_date": due.isoformat(),
            "status": status,
            "payment_link_status": link_status,
            "created_at": booking.created_at,
            "paid_at": booking.confirmed_at if status == "paid" else None,
        })

    invoices.sort(key=lambda inv: inv["created_at"], reverse=True)
    return invoices


# ── Payments ledger ─────────────────────────────────────────────────────────

_PAYMENT_METHODS = {
    "deposit": "bank_transfer",
    "now_net": "card",
    "now_gross": "card",
    "hotel": "payment_link",
}


def _ledger_entry(prefix: str, index: int, booking: ReportingBooking, when: datetime, entry_type: str,
                  amount: float, status: str, description: str, method: str) -> dict:
    return {
        "id": f"{prefix}-{index:03d}",
        "date": when,
        "type": entry_type,
        "amount": amount,
        "currency": booking.currency,
        "method": method,
        "reference": booking.order_id,
        "reference_type": "booking",
        "status": status,
        "description": description,
    }


def payment_ledger(bookings: List[ReportingBooking]) -> List[dict]:
    """Derive payment and refund entries from bookings, newest first.

    Collected bookings yield a completed payment, cancellations a completed
    refund (negative amount). Confirmed bookings still awaiting money yield a
    pending payment; pay-at-property ones are dated at check-in.
    """
    entries = []
    for index, booking in enumerate(bookings, start=1):
        method = _PAYMENT_METHODS.get(booking.payment_type, "card")

        if booking.payment_status == "collected" and booking.status != "cancelled":
            entries.append(_ledger_entry(
                "PAY", index, booking, booking.confirmed_at or booking.created_at, "payment",
                booking.client_total, "completed",
                f"Payment for booking {booking.order_id} - {booking.hotel}", method,
            ))
        if booking.status == "cancelled":
            entries.append(_ledger_entry(
                "REF", index, booking, booking.created_at, "refund",
                -booking.client_total, "completed",
                f"Refund for cancelled booking {booking.order_id}", method,
            ))
        if booking.status == "confirmed" and booking.payment_status == "not_collected":
            entries.append(_ledger_entry(
                "PND", index, booking, booking.created_at, "payment",
                booking.client_total, "pending", f"Pending payment for {booking.hotel}", method,
            ))
        if booking.status == "confirmed" and booking.payment_status == "pay_at_property":
            check_in = datetime.combine(booking.check_in, time.min, tzinfo=timezone.utc)
            entries.append(_ledger_entry(
                "PAP", index, booking, check_in, "payment",
                booking.client_total, "pending", f"Pay at property - {booking.hotel}", "payment_link",
            ))

    entries.sort(key=lambda entry: entry["date"], reverse=True)
    return entries


def payment_totals(entries: List[dict]) -> dict:
    """Totals over completed entries; refunds are reported as a positive sum."""
    total_payments = total_refunds = total_adjustments = 0.0
    for entry in entries:
        if entry["status"] != "completed":
            continue
        if entry["type"] == "payment":
            total_payments += entry["amount"]
        elif entry["type"] == "refund":
            total_refunds += abs(entry["amount"])
        elif entry["type"] == "adjustment":
            total_adjustments += entry["amount"]

    return {
        "total_payments": round(total_payments, 2),
        "total_refunds": round(total_refunds, 2),
        "total_adjustments": round(total_adjustments, 2),
        "net_total": round(total_payments - total_refunds + total_adjustments, 2),
        "currency": _primary_currency(entry["currency"] for entry in entries),
    }
