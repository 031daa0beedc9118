import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import BookingRead
from core.auth import CurrentUser, get_current_user
from core.calendar import booking_calendar_event, generate_ics
from core.reporting import room_type
from db.database import get_db
from db.models import User, UserBooking

router = APIRouter(prefix="/bookings", tags=["bookings"])
logger = logging.getLogger(__name__)


def owned_bookings(user: CurrentUser):
    """Bookings visible to the caller; everything when auth is disabled."""
    query = select(UserBooking)
    if user.is_anonymous:
        return query
    return query.join(User, UserBooking.user_id == User.id).where(User.auth_provider_id == user.user_id)


async def _get_booking(booking_id: str, user: CurrentUser, db: AsyncSession) -> UserBooking:
    result = await db.execute(owned_bookings(user).where(UserBooking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.get("", response_model=List[BookingRead])
async def list_bookings(
    status: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = owned_bookings(user).order_by(UserBooking.created_at.desc())
    if status:
        query = query.where(UserBooking.status == status)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _get_booking(booking_id, user, db)


@router.get("/{booking_id}/calendar.ics")
async def booking_calendar(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking = await _get_booking(booking_id, user, db)

    event = booking_calendar_event(
        hotel_name=booking.hotel_name or "Hotel",
        check_in=booking.check_in_date,
        check_out=booking.check_out_date,
        confirmation_number=booking.confirmation_number or booking.order_id,
        address=booking.hotel_address or "",
        city=booking.hotel_city or "",
        country=booking.hotel_country or "",
        room_type=room_type(booking.rooms_data) if booking.rooms_data else None,
        guest_name=booking.lead_guest_name,
    )
    filename = f"booking-{booking.confirmation_number or booking.order_id}.ics"
    return Response(
        content=generate_ics(event),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
