import logging
from dataclasses import replace
from datetime import date
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.bookings import owned_bookings
from api.schemas import BookingStatsOut, InvoiceOut, PaymentsOut, ReportingBookingOut, RevenueReportOut
from core.auth import CurrentUser, get_current_user
from core.reporting import (
    ReportingBooking,
    ReportingFilters,
    booking_stats,
    build_invoices,
    filter_bookings,
    payment_ledger,
    payment_totals,
    pipeline_stages,
    revenue_report,
    to_reporting_booking,
)
from db.database import get_db
from db.models import User, UserBooking

router = APIRouter(prefix="/reporting", tags=["reporting"])
logger = logging.getLogger(__name__)


async def _load_bookings(db: AsyncSession, user: CurrentUser) -> List[ReportingBooking]:
    result = await db.execute(owned_bookings(user).order_by(UserBooking.created_at.desc()))
    return [to_reporting_booking(row) for row in result.scalars()]


def reporting_filters(
    search: Optional[str] = None,
    status: List[str] = Query(default=[]),
    payment_type: List[str] = Query(default=[]),
    payment_status: List[str] = Query(default=[]),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    date_mode: Literal["created", "checkin", "checkout"] = "created",
) -> ReportingFilters:
    return ReportingFilters(
        search=search,
        statuses=status,
        payment_types=payment_type,
        payment_statuses=payment_status,
        date_from=date_from,
        date_to=date_to,
        date_mode=date_mode,
    )


@router.get("/bookings", response_model=List[ReportingBookingOut])
async def reporting_bookings(
    filters: ReportingFilters = Depends(reporting_filters),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bookings = filter_bookings(await _load_bookings(db, user), filters)
    return [b.to_dict() for b in bookings]


@router.get("/stats", response_model=BookingStatsOut)
async def reporting_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bookings = await _load_bookings(db, user)
    stats = booking_stats(bookings)
    stats["pipeline"] = pipeline_stages(bookings)
    return stats


@router.get("/invoices", response_model=List[InvoiceOut])
async def reporting_invoices(
    filters: ReportingFilters = Depends(reporting_filters),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bookings = filter_bookings(await _load_bookings(db, user), filters)
    invoices = build_invoices(bookings)
    logger.debug("Built %d invoices from %d bookings", len(invoices), len(bookings))
    return invoices


async def _agent_names(db: AsyncSession, bookings: List[ReportingBooking]) -> Dict[str, str]:
    agent_ids = {b.agent_id for b in bookings if b.agent_id}
    if not agent_ids:
        return {}
    result = await db.execute(select(User.id, User.name).where(User.id.in_(agent_ids)))
    return {user_id: name for user_id, name in result.all()}


@router.get("/revenue", response_model=RevenueReportOut)
async def reporting_revenue(
    filters: ReportingFilters = Depends(reporting_filters),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # Status filters are ignored for revenue.
    bookings = filter_bookings(await _load_bookings(db, user), replace(filters, statuses=[]))
    return revenue_report(bookings, await _agent_names(db, bookings))


@router.get("/payments", response_model=PaymentsOut)
async def reporting_payments(
    filters: ReportingFilters = Depends(reporting_filters),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payments = payment_ledger(filter_bookings(await _load_bookings(db, user), filters))
    return {"payments": payments, "totals": payment_totals(payments)}
