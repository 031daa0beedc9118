"""Tests for the reporting projections and the /reporting and /bookings routes."""
from datetime import date, datetime, timezone

import pytest

from core.reporting import (
    ReportingFilters,
    booking_stats,
    build_invoices,
    filter_bookings,
    invoice_status,
    map_payment_status,
    map_status,
    payment_ledger,
    payment_totals,
    pipeline_stages,
    revenue_report,
    supplier_cost,
    to_reporting_booking,
)

TODAY = date(2026, 6, 1)


# ── Row mapping ────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw,expected", [
    ("pending", "processing"),
    ("completed", "confirmed"),
    ("cancelled", "cancelled"),
    ("weird", "processing"),
    (None, "processing"),
])
def test_map_status(raw, expected):
    assert map_status(raw) == expected


def test_pay_at_hotel_is_pay_at_property():
    assert map_payment_status("collected", "hotel") == "pay_at_property"
    assert map_payment_status("paid", "now_net") == "collected"
    assert map_payment_status(None, None) == "not_collected"


def test_supplier_cost_removes_markup():
    assert supplier_cost(120.0) == 100.0
    assert supplier_cost(100.0) == 83.33


def test_to_reporting_booking(booking_factory):
    row = booking_factory(
        partner_order_id="TH-1",
        amount=600.0,
        nights=None,
        free_cancellation_before=datetime(2026, 6, 5, tzinfo=timezone.utc),
    )
    booking = to_reporting_booking(row)

    assert booking.id == "TH-1"
    assert booking.nights == 3
    assert booking.supplier_total == 500.0
    assert booking.margin == 100.0
    assert booking.margin_percent == 17
    assert booking.room_type == "Deluxe King"
    assert booking.cancellation_policy == "Free cancellation until Jun 5, 2026"
    assert booking.confirmed_at == row.updated_at


def test_to_reporting_booking_fallbacks(booking_factory):
    row = booking_factory(
        partner_order_id=None,
        status="pending",
        hotel_name=None,
        lead_guest_name=None,
        amount=None,
        rooms_data=None,
        cancellation_policies=[{"description": "Non-refundable"}],
    )
    booking = to_reporting_booking(row)

    assert booking.id == row.id
    assert booking.status == "processing"
    assert booking.hotel == "Unknown Hotel"
    assert booking.lead_guest == "Guest"
    assert booking.margin_percent == 0
    assert booking.room_type == "Standard Room"
    assert booking.cancellation_policy == "Non-refundable"
    assert booking.confirmed_at is None


# ── Filtering and aggregates ───────────────────────────────────────────────────

@pytest.fixture
def bookings(booking_factory):
    rows = [
        booking_factory(order_id="100", hotel_name="Royal Palm", hotel_city="Dubai", amount=600.0,
                        check_in_date=date(2026, 6, 10), check_out_date=date(2026, 6, 13)),
        booking_factory(order_id="101", hotel_name="Savoy", hotel_city="London", amount=300.0,
                        currency_code="GBP", status="cancelled",
                        check_in_date=date(2026, 5, 20), check_out_date=date(2026, 5, 22)),
        booking_factory(order_id="102", hotel_name="Ritz", hotel_city="Paris", amount=900.0,
                        status="pending", payment_type="hotel",
                        check_in_date=date(2026, 5, 30), check_out_date=date(2026, 6, 2)),
        booking_factory(order_id="103", hotel_name="Atlantis", hotel_city="Dubai", amount=240.0,
                        payment_status="paid",
                        check_in_date=date(2026, 5, 30), check_out_date=date(2026, 6, 3),
                        created_at=datetime(2026, 5, 20, tzinfo=timezone.utc)),
        booking_factory(order_id="104", hotel_name="Old Stay", hotel_city="Rome", amount=120.0,
                        check_in_date=date(2026, 4, 1), check_out_date=date(2026, 4, 3)),
    ]
    return [to_reporting_booking(r) for r in rows]


def test_filter_by_search_status_and_payment(bookings):
    assert [b.order_id for b in filter_bookings(bookings, ReportingFilters(search="dubai"))] == ["100", "103"]
    assert [b.order_id for b in filter_bookings(bookings, ReportingFilters(statuses=["cancelled"]))] == ["101"]
    assert [b.order_id for b in filter_bookings(
        bookings, ReportingFilters(payment_statuses=["pay_at_property"]))] == ["102"]


def test_date_range_needs_both_ends(bookings):
    half_open = ReportingFilters(date_from=date(2026, 6, 1), date_mode="checkin")
    assert len(filter_bookings(bookings, half_open)) == len(bookings)

    june = ReportingFilters(date_from=date(2026, 6, 1), date_to=date(2026, 6, 30), date_mode="checkin")
    assert [b.order_id for b in filter_bookings(bookings, june)] == ["100"]


def test_stats_count_revenue_over_confirmed_only(bookings):
    stats = booking_stats(bookings)
    assert stats["total_bookings"] == 5
    assert stats["confirmed_bookings"] == 3
    assert stats["cancelled_bookings"] == 1
    assert stats["processing_bookings"] == 1
    assert stats["total_revenue"] == 960.0
    assert stats["total_margin"] == 160.0
    assert stats["currency"] == "USD"


def test_stats_empty():
    assert booking_stats([])["currency"] == "USD"


def test_pipeline_stages(bookings):
    stages = {s["id"]: s for s in pipeline_stages(bookings, TODAY)}
    assert stages["pending"]["count"] == 1
    assert stages["confirmed"]["count"] == 1
    assert stages["in_progress"]["count"] == 1
    assert stages["in_progress"]["value"] == 240.0
    assert stages["completed"]["count"] == 1


def test_invoice_status(bookings):
    by_order = {b.order_id: b for b in bookings}
    assert invoice_status(by_order["101"], TODAY) == "paid"      # cancelled
    assert invoice_status(by_order["103"], TODAY) == "paid"      # collected
    assert invoice_status(by_order["102"], TODAY) == "unpaid"    # pay at property
    assert invoice_status(by_order["104"], TODAY) == "overdue"
    assert invoice_status(by_order["100"], TODAY) == "sent"


def test_build_invoices(bookings):
    invoices = build_invoices(bookings, TODAY)
    by_booking = {inv["booking_ids"][0]: inv for inv in invoices}

    assert by_booking["100"]["id"] == "INV-2026-001"
    assert by_booking["100"]["due_date"] == "2026-06-03"
    assert by_booking["100"]["payment_link_status"] == "active"
    # due date already passed: falls back to created + 14 days
    assert by_booking["104"]["due_date"] == "2026-05-15"
    assert by_booking["104"]["payment_link_status"] == "expired"
    assert by_booking["101"]["payment_link_status"] is None
    assert by_booking["101"]["paid_at"] is None  # cancelled, never confirmed
    assert by_booking["103"]["paid_at"] is not None
    # newest first
    assert invoices[0]["booking_ids"] == ["103"]


def test_revenue_metrics(bookings):
    metrics = revenue_report(bookings)["metrics"]
    assert metrics == {
        "gross_sales": 960.0,
        "supplier_cost": 800.0,
        "margin": 160.0,
        "margin_percent": 16.7,
        "cancellation_losses": 300.0,
        "currency": "USD",
    }


def test_revenue_breakdowns(bookings):
    report = revenue_report(bookings)

    cities = [(c["city"], c["bookings_count"], c["revenue"]) for c in report["revenue_by_city"]]
    assert cities == [("Dubai", 2, 840.0), ("Rome", 1, 120.0)]

    assert report["revenue_by_agent"] == [{
        "agent_id": "current-user", "agent_name": "Current User",
        "bookings_count": 3, "revenue": 960.0, "margin": 160.0, "currency": "USD",
    }]

    hotels = report["top_hotels"]
    assert [h["hotel_name"] for h in hotels] == ["Royal Palm", "Atlantis", "Old Stay"]
    assert hotels[0]["margin_percent"] == 16.7

    assert report["high_cancellation_hotels"] == [{
        "hotel_name": "Savoy", "city": "London", "bookings_count": 1, "cancellations": 1,
        "cancellation_rate": 100.0, "lost_revenue": 300.0, "currency": "USD",
    }]


def test_revenue_report_empty():
    report = revenue_report([])
    assert report["metrics"]["gross_sales"] == 0
    assert report["metrics"]["margin_percent"] == 0.0
    assert report["metrics"]["currency"] == "USD"
    assert report["top_hotels"] == []


def test_payment_ledger_entries(bookings):
    entries = payment_ledger(bookings)

    assert [(e["id"], e["type"], e["status"], e["amount"]) for e in entries] == [
        ("PAY-004", "payment", "completed", 240.0),
        ("PND-001", "payment", "pending", 600.0),
        ("REF-002", "refund", "completed", -300.0),
        ("PND-005", "payment", "pending", 120.0),
    ]
    assert entries[0]["reference"] == "103"
    assert entries[0]["method"] == "card"
    assert entries[2]["currency"] == "GBP"


def test_pay_at_property_entry_dated_at_check_in(booking_factory):
    row = booking_factory(order_id="300", payment_type="hotel", check_in_date=date(2026, 7, 1))
    (entry,) = payment_ledger([to_reporting_booking(row)])

    assert entry["id"] == "PAP-001"
    assert entry["status"] == "pending"
    assert entry["method"] == "payment_link"
    assert entry["date"] == datetime(2026, 7, 1, tzinfo=timezone.utc)


def test_payment_totals_count_completed_only(bookings):
    totals = payment_totals(payment_ledger(bookings))
    assert totals == {
        "total_payments": 240.0,
        "total_refunds": 300.0,
        "total_adjustments": 0.0,
        "net_total": -60.0,
        "currency": "USD",
    }


# ── Routes ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_reporting_routes(api_client, db, booking_factory):
    db.add_all([
        booking_factory(order_id="200", amount=600.0),
        booking_factory(order_id="201", amount=300.0, status="cancelled"),
    ])
    await db.commit()

    resp = await api_client.get("/reporting/bookings", params={"status": ["cancelled"]})
    assert resp.status_code == 200
    assert [b["order_id"] for b in resp.json()] == ["201"]

    stats = (await api_client.get("/reporting/stats")).json()
    assert stats["total_bookings"] == 2
    assert stats["total_revenue"] == 600.0
    assert [s["id"] for s in stats["pipeline"]] == ["pending", "confirmed", "in_progress", "completed"]

    invoices = (await api_client.get("/reporting/invoices")).json()
    assert len(invoices) == 2
    assert all(inv["id"].startswith("INV-2026-") for inv in invoices)


@pytest.mark.asyncio
async def test_revenue_and_payments_routes(api_client, db, booking_factory, user):
    db.add_all([
        booking_factory(order_id="400", amount=600.0, user_id=user.id, payment_status="paid"),
        booking_factory(order_id="401", amount=300.0, status="cancelled"),
    ])
    await db.commit()

    # status filters are ignored for revenue
    resp = await api_client.get("/reporting/revenue", params={"status": ["cancelled"]})
    assert resp.status_code == 200
    report = resp.json()
    assert report["metrics"]["gross_sales"] == 600.0
    assert report["metrics"]["cancellation_losses"] == 300.0
    assert report["revenue_by_agent"][0]["agent_name"] == "Agent Smith"
    assert report["high_cancellation_hotels"][0]["cancellation_rate"] == 50.0

    payments = (await api_client.get("/reporting/payments")).json()
    assert {p["reference"] for p in payments["payments"]} == {"400", "401"}
    assert payments["totals"]["net_total"] == 300.0


@pytest.mark.asyncio
async def test_reporting_rejects_bad_date_mode(api_client):
    resp = await api_client.get("/reporting/bookings", params={"date_mode": "yesterday"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_bookings_list_and_detail(api_client, db, booking_factory):
    db.add_all([
        booking_factory(id="b-1", order_id="300"),
        booking_factory(id="b-2", order_id="301", status="cancelled"),
    ])
    await db.commit()

    resp = await api_client.get("/bookings", params={"status": "cancelled"})
    assert [b["id"] for b in resp.json()] == ["b-2"]

    detail = await api_client.get("/bookings/b-1")
    assert detail.status_code == 200
    assert detail.json()["order_id"] == "300"

    missing = await api_client.get("/bookings/nope")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_booking_calendar_download(api_client, db, booking_factory):
    db.add(booking_factory(id="b-ics", confirmation_number="CONF-77"))
    await db.commit()

    resp = await api_client.get("/bookings/b-ics/calendar.ics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/calendar")
    assert 'filename="booking-CONF-77.ics"' in resp.headers["content-disposition"]
    assert "SUMMARY:Hotel Stay: Royal Palm Tower" in resp.text
    assert "DTEND;VALUE=DATE:20260614" in resp.text
