"""Supplier order normalization for the order details and cancellation screens."""
from datetime import datetime
from typing import List, Optional

DEFAULT_CHECK_IN_TIME = "14:00:00"
DEFAULT_CHECK_OUT_TIME = "12:00:00"


def _money(value, default=None):
    if isinstance(value, dict):
        return value.get("amount", default), value.get("currency_code")
    return (value if value is not None else default), None


def split_taxes(taxes: Optional[list]) -> tuple:
    """Return (included, not_included); the latter are paid at the property."""
    included, not_included = [], []
    for tax in taxes or []:
        amount, currency = _money(tax.get("amount"), "0")
        info = {
            "name": tax.get("name") or "Tax",
            "amount": amount or "0",
            "currency": currency or tax.get("currency_code") or "USD",
            "included_by_supplier": bool(tax.get("is_included", tax.get("included_by_supplier", False))),
        }
        (included if info["included_by_supplier"] else not_included).append(info)
    return included, not_included


def extract_deposits(hotel_data: Optional[dict], rooms_data: Optional[list]) -> List[str]:
    deposits = []
    deposit = (hotel_data or {}).get("deposit")
    if isinstance(deposit, str):
        deposits.append(deposit)
    elif isinstance(deposit, list):
        deposits.extend(deposit)
    for room in rooms_data or []:
        if room.get("deposit"):
            deposits.append(room["deposit"])
    return deposits


def guest_counts(rooms_data: Optional[list]) -> dict:
    guest_data = ((rooms_data or [{}])[0] or {}).get("guest_data") or {}
    guests = guest_data.get("guests") or []
    return {
        "adults": guest_data.get("adults_number") or sum(1 for g in guests if not g.get("is_child")),
        "children": guest_data.get("children_number") or sum(1 for g in guests if g.get("is_child")),
    }


def _penalty_date(raw: Optional[str]) -> str:
    if not raw:
        return ""
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return raw


def cancellation_policy_text(cancellation_info: Optional[dict]) -> Optional[str]:
    penalties = (cancellation_info or {}).get("penalties")
    if not isinstance(penalties, list) or not penalties:
        return None
    lines = []
    for penalty in penalties:
        amount, currency = _money(penalty.get("amount"))
        charge = " ".join(str(part) for part in (amount or "full booking amount", currency) if part)
        lines.append(f"From {_penalty_date(penalty.get('from_date'))}: {charge} penalty")
    return "; ".join(lines)


def transform_order(order: dict) -> dict:
    rooms = order.get("rooms_data") or []
    first_room = rooms[0] if rooms else None
    guests = ((first_room or {}).get("guest_data") or {}).get("guests") or []
    first_guest = guests[0] if guests else None
    hotel = order.get("hotel_data") or {}
    included, not_included = split_taxes(order.get("taxes"))
    amount_sell = order.get("amount_sell") or {}
    payment = order.get("payment_data") or {}
    cancellation_info = order.get("cancellation_info") or {}

    room = None
    if first_room:
        room = {
            "name": first_room.get("room_name"),
            "meal_name": first_room.get("meal_name"),
            "bedding_name": first_room.get("bedding_name"),
            "has_breakfast": bool(first_room.get("has_breakfast")),
            "no_child_meal": bool(first_room.get("no_child_meal")),
            "guests": [
                {k: g.get(k) for k in ("first_name", "last_name", "is_child", "age")}
                for g in guests
            ],
        }

    lead_guest = None
    if first_guest:
        lead_guest = {
            "first_name": first_guest.get("first_name"),
            "last_name": first_guest.get("last_name"),
            "email": (order.get("user_data") or {}).get("email"),
        }

    return {
        "order_id": str(order.get("order_id")),
        "partner_order_id": (order.get("partner_data") or {}).get("order_id"),
        "order_group_id": str(order["order_group_id"]) if order.get("order_group_id") else None,
        "status": order.get("status"),
        "confirmation_number": (order.get("supplier_data") or {}).get("confirmation_id") or str(order.get("order_id")),
        "created_at": order.get("created_at"),
        "updated_at": order.get("modified_at"),
        "dates": {
            "check_in": order.get("checkin_at"),
            "check_out": order.get("checkout_at"),
            "nights": order.get("nights"),
        },
        "hotel": {
            "id": hotel.get("id"),
            "hid": hotel.get("hid"),
            "name": hotel.get("name"),
            "address": hotel.get("address"),
            "city": hotel.get("city"),
            "country": hotel.get("country"),
            "star_rating": hotel.get("star_rating"),
            "phone": hotel.get("phone"),
            "check_in_time": hotel.get("check_in_time") or DEFAULT_CHECK_IN_TIME,
            "check_out_time": hotel.get("check_out_time") or DEFAULT_CHECK_OUT_TIME,
        },
        "room": room,
        "guest_counts": guest_counts(rooms),
        "lead_guest": lead_guest,
        "price": {
            "amount": amount_sell.get("amount"),
            "currency_code": amount_sell.get("currency_code"),
        },
        "payment": {
            "type": payment.get("payment_type"),
            "status": "paid" if payment.get("paid_at") else "pending",
            "due_date": payment.get("payment_due"),
        },
        "cancellation_info": cancellation_info or None,
        "cancellation_policy_text": cancellation_policy_text(cancellation_info),
        "is_cancellable": order.get("is_cancellable"),
        "free_cancellation_before": cancellation_info.get("free_cancellation_before"),
        "taxes_included": included,
        "taxes_not_included": not_included,
        "deposits": extract_deposits(hotel, rooms),
        "special_requests": (first_room or {}).get("special_requests"),
    }


# ── Vouchers ────────────────────────────────────────────────────────────────

VOUCHER_ERROR_MESSAGES = {
    "failed_to_generate_document": "Voucher is still being generated. Please try again in a few moments.",
    "order_not_found": "Order not found. Please check the order ID.",
    "pending": "Voucher is being processed. Please try again shortly.",
    "voucher_is_not_downloadable": (
        "Voucher is not yet available. The order may still be processing or payment pending."
    ),
}
DEFAULT_VOUCHER_ERROR = "Failed to download voucher"


def voucher_error_body(error_data) -> dict:
    """Map a supplier voucher error to a message an agent can act on."""
    code = None
    if isinstance(error_data, dict):
        error = error_data.get("error")
        code = error.get("code") if isinstance(error, dict) else error
    message = DEFAULT_VOUCHER_ERROR
    if isinstance(code, str):
        message = VOUCHER_ERROR_MESSAGES.get(code, DEFAULT_VOUCHER_ERROR)
    return {
        "success": False,
        "error": message,
        "code": code,
        "details": error_data,
    }
