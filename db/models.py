import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


# ── Users and bookings ──────────────────────────────────────────────────────

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    auth_provider_id = Column(String, nullable=False)  # subject from the managed auth backend
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    bookings = relationship("UserBooking", back_populates="user", lazy="select")


class UserBooking(Base):
    """One confirmed (or attempted) hotel order made by an agent."""

    __tablename__ = "user_bookings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=True)
    order_id = Column(String, nullable=False, index=True)
    partner_order_id = Column(String, nullable=True)
    order_group_id = Column(String, nullable=True)
    # pending | processing | confirmed | completed | cancelled | failed
    status = Column(String, default="pending", nullable=False)
    confirmation_number = Column(String, nullable=True)

    hotel_id = Column(String, nullable=True)
    hotel_name = Column(String, nullable=True)
    hotel_address = Column(String, nullable=True)
    hotel_city = Column(String, nullable=True)
    hotel_country = Column(String, nullable=True)
    hotel_star_rating = Column(Integer, nullable=True)

    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    nights = Column(Integer, nullable=True)
    rooms_data = Column(JSON, nullable=True)
    guests_data = Column(JSON, nullable=True)
    lead_guest_name = Column(String, nullable=True)
    lead_guest_email = Column(String, nullable=True)

    amount = Column(Float, nullable=True)
    currency_code = Column(String, nullable=True)
    is_cancellable = Column(Boolean, nullable=True)
    free_cancellation_before = Column(DateTime(timezone=True), nullable=True)
    cancellation_policies = Column(JSON, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    payment_type = Column(String, nullable=True)
    payment_status = Column(String, nullable=True)
    raw_api_response = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")


# ── Hotel content ───────────────────────────────────────────────────────────

class HotelStaticCache(Base):
    """Upstream /hotel/info/ responses, cached per language until expires_at."""

    __tablename__ = "hotel_static_cache"
    __table_args__ = (UniqueConstraint("hotel_id", "language", name="uq_hotel_static_cache_lang"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    hotel_id = Column(String, nullable=False)
    language = Column(String, nullable=False, default="en")
    description = Column(Text, nullable=True)
    raw_data = Column(JSON, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class HotelDumpData(Base):
    """Static hotel content imported from the supplier's hotel dump."""

    __tablename__ = "hotel_dump_data"

    hotel_id = Column(String, primary_key=True)
    hid = Column(Integer, nullable=True)
    name = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    star_rating = Column(Integer, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    amenities = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
    check_in_time = Column(String, nullable=True)
    check_out_time = Column(String, nullable=True)


# Indices for common query patterns
Index("ix_user_bookings_user_status", UserBooking.user_id, UserBooking.status)
Index("ix_hotel_dump_city", HotelDumpData.city)
