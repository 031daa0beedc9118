"""Tests for the authentication layer and per-user booking scoping."""
import time
from unittest.mock import patch

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.main import app
from db.database import get_db
from db.models import User

TEST_SECRET = "test-auth-secret-for-jwt-validation"


@pytest_asyncio.fixture
async def auth_client(session_factory):
    """Client with auth enabled (AUTH_SECRET set)."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    with patch("core.config.settings.auth_secret", TEST_SECRET):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            yield client

    app.dependency_overrides.clear()


def _make_jwt(user_id: str = "user-1", email: str = "test@test.com",
              name: str = "Test User", expired: bool = False, secret: str = TEST_SECRET) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "aud": "authenticated",
        "iat": int(time.time()),
        "exp": int(time.time()) + (-3600 if expired else 3600),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ── Unauthenticated request → 401 ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_unauthenticated_request_returns_401(auth_client):
    resp = await auth_client.get("/bookings")
    assert resp.status_code == 401
    assert "Authentication required" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_expired_jwt_returns_401(auth_client):
    resp = await auth_client.get("/reporting/stats", headers=_auth(_make_jwt(expired=True)))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_invalid_jwt_returns_401(auth_client):
    resp = await auth_client.get("/bookings", headers=_auth("invalid-token-here"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_wrong_secret_returns_401(auth_client):
    resp = await auth_client.get("/bookings", headers=_auth(_make_jwt(secret="some-other-secret")))
    assert resp.status_code == 401


# ── Exempt and public paths ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_health_check_exempt_from_auth(auth_client):
    resp = await auth_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_proxy_endpoints_are_public(auth_client):
    resp = await auth_client.post("/proxy/destination", json={"query": "Paris"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True


# ── Valid JWT → caller's bookings only ───────────────────────────────────────

@pytest.mark.asyncio
async def test_cookie_token_accepted(auth_client):
    resp = await auth_client.get("/bookings", headers={"Cookie": f"auth_token={_make_jwt()}"})
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_bookings_scoped_to_caller(auth_client, db, booking_factory):
    alice = User(email="alice@test.com", name="Alice", auth_provider_id="user-alice")
    bob = User(email="bob@test.com", name="Bob", auth_provider_id="user-bob")
    db.add_all([alice, bob])
    await db.flush()
    db.add_all([
        booking_factory(id="b-alice", order_id="1", user_id=alice.id),
        booking_factory(id="b-bob", order_id="2", user_id=bob.id),
    ])
    await db.commit()

    token = _make_jwt(user_id="user-alice", email="alice@test.com", name="Alice")
    resp = await auth_client.get("/bookings", headers=_auth(token))
    assert [b["id"] for b in resp.json()] == ["b-alice"]

    other = await auth_client.get("/bookings/b-bob", headers=_auth(token))
    assert other.status_code == 404

    stats = (await auth_client.get("/reporting/stats", headers=_auth(token))).json()
    assert stats["total_bookings"] == 1


@pytest.mark.asyncio
async def test_token_never_logged(auth_client, caplog):
    token = "definitely-not-a-valid-token"
    with caplog.at_level("DEBUG"):
        await auth_client.get("/bookings", headers=_auth(token))
    assert not any(token in r.getMessage() for r in caplog.records)
