from typing import List, Optional

from core.filter_values import DEFAULT_FILTER_VALUES
from core.orders import voucher_error_body
from providers.base import BaseSupplierProvider, UpstreamError

MOCK_VOUCHER_PDF = b"%PDF-1.4\n% mock voucher\n%%EOF\n"


def _mock_order(order_id: str) -> dict:
    return {
        "order_id": int(order_id) if order_id.isdigit() else order_id,
        "partner_data": {"order_id": f"BK-MOCK-{order_id}"},
        "status": "completed",
        "checkin_at": "2026-06-15",
        "checkout_at": "2026-06-18",
        "nights": 3,
        "hotel_data": {"id": "mock_grand_hotel", "hid": 1001, "name": "Mock Grand Hotel"},
        "rooms_data": [{
            "room_name": "Deluxe King",
            "meal_name": "Breakfast",
            "bedding_name": "King bed",
            "has_breakfast": True,
            "guest_data": {
                "adults_number": 2,
                "children_number": 0,
                "guests": [
                    {"first_name": "Jane", "last_name": "Doe", "is_child": False},
                    {"first_name": "John", "last_name": "Doe", "is_child": False},
                ],
            },
        }],
        "amount_sell": {"amount": "750.00", "currency_code": "USD"},
        "payment_data": {"payment_type": "now", "paid_at": "2026-05-01T10:00:00Z"},
        "taxes": [
            {"name": "VAT", "amount": {"amount": "50.00", "currency_code": "USD"}, "is_included": True},
            {"name": "City tax", "amount": {"amount": "12.00", "currency_code": "USD"}, "is_included": False},
        ],
        "is_cancellable": True,
        "cancellation_info": {"free_cancellation_before": "2026-06-10T00:00:00Z"},
    }


class MockSupplierProvider(BaseSupplierProvider):
    async def filter_values(self) -> dict:
        return dict(DEFAULT_FILTER_VALUES)

    async def hotel_info(self, hid: int, language: str = "en") -> dict:
        return {
            "name": "Mock Grand Hotel",
            "address": "1 Mock Street",
            "description_struct": [{"title": "About", "paragraphs": ["A mock hotel.", "Close to everything."]}],
            "images": [{"tmpl": "https://cdn.example.com/mock/{size}/1.jpg"}],
            "metapolicy_struct": {"check_in_check_out": {"check_in_time": "15:00", "check_out_time": "11:00"}},
        }

    async def order_info(self, order_id: str, language: str = "en") -> List[dict]:
        if order_id.startswith("missing"):
            return []
        return [_mock_order(order_id)]

    async def cancel_order(self, order_id: str, reason: Optional[str] = None, language: str = "en") -> dict:
        return {"status": "ok", "data": {"order_id": order_id, "amount_refunded": "750.00"}, "error": None}

    async def download_voucher(self, partner_order_id: str, language: str = "en") -> bytes:
        if partner_order_id.startswith("pending"):
            raise UpstreamError(400, voucher_error_body({"error": "voucher_is_not_downloadable"}))
        return MOCK_VOUCHER_PDF
