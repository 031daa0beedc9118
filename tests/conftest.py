"""Shared pytest fixtures for the hotel booking test suite."""
import uuid
from datetime import date, datetime, timezone

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from api.main import app
from api.routes.content import filter_values_cache
from db.database import get_db
from db.models import Base, User, UserBooking
from providers.factory import search_provider, supplier_provider
from providers.real.travelapi import TravelApiSearchProvider
from providers.real.worldota import WorldOtaSupplierProvider

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
SEARCH_BASE_URL = "http://search.test"
SUPPLIER_BASE_URL = "http://supplier.test"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(TEST_DB_URL, echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_filter_values_cache():
    filter_values_cache.clear()
    yield
    filter_values_cache.clear()


def make_booking(**overrides) -> UserBooking:
    """Build a UserBooking with sensible defaults; pass column values to override."""
    values = dict(
        id=str(uuid.uuid4()),
        order_id=str(uuid.uuid4().int)[:9],
        partner_order_id=f"TH-{uuid.uuid4().hex[:8]}",
        status="confirmed",
        confirmation_number="CONF-1",
        hotel_name="Royal Palm Tower",
        hotel_address="1 Palm Jumeirah",
        hotel_city="Dubai",
        hotel_country="United Arab Emirates",
        check_in_date=date(2026, 6, 10),
        check_out_date=date(2026, 6, 13),
        nights=3,
        rooms_data=[{"roomName": "Deluxe King"}],
        lead_guest_name="Jane Doe",
        lead_guest_email="jane@example.com",
        amount=600.0,
        currency_code="USD",
        payment_type="now_net",
        payment_status="not_collected",
        created_at=datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc),
        updated_at=datetime(2026, 5, 1, 12, 5, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return UserBooking(**values)


@pytest.fixture
def booking_factory():
    return make_booking


@pytest_asyncio.fixture
async def user(db) -> User:
    u = User(email="agent@example.com", name="Agent Smith", auth_provider_id="user-1")
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


# ── API test client ────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def api_client(session_factory):
    """AsyncClient wired to FastAPI with an in-memory DB override."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()


# ── Fake upstreams ─────────────────────────────────────────────────────────────
#
# These install the real providers on an httpx.MockTransport, so the HTTP
# handling in the providers runs against a canned handler.

@pytest_asyncio.fixture
async def search_upstream():
    clients = []

    def install(handler) -> TravelApiSearchProvider:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        provider = TravelApiSearchProvider(client=client, base_url=SEARCH_BASE_URL)
        app.dependency_overrides[search_provider] = lambda: provider
        return provider

    yield install
    app.dependency_overrides.pop(search_provider, None)
    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def supplier_upstream():
    clients = []

    def install(handler, key_id: str = "1234", api_key: str = "secret-key") -> WorldOtaSupplierProvider:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        provider = WorldOtaSupplierProvider(
            client=client, key_id=key_id, api_key=api_key, base_url=SUPPLIER_BASE_URL
        )
        app.dependency_overrides[supplier_provider] = lambda: provider
        return provider

    yield install
    app.dependency_overrides.pop(supplier_provider, None)
    for client in clients:
        await client.aclose()
