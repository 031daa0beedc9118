"""JWT authentication against the managed auth backend's HS256 secret.

Tokens come from the Authorization header or the auth_token cookie and are
never logged or stored. With no AUTH_SECRET configured every request runs
as the anonymous user.
"""
import logging
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from core.config import settings

logger = logging.getLogger(__name__)

# Paths exempt from authentication
AUTH_EXEMPT_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
ANONYMOUS_USER_ID = "anonymous"


class CurrentUser:
    """Represents the authenticated user from JWT."""
    def __init__(self, user_id: str, email: str, name: str):
        self.user_id = user_id
        self.email = email
        self.name = name

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == ANONYMOUS_USER_ID


ANONYMOUS = CurrentUser(user_id=ANONYMOUS_USER_ID, email="", name="Anonymous")


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.auth_secret,
            algorithms=["HS256"],
            options={"verify_exp": True, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.cookies.get("auth_token") or None


def _user_from_payload(payload: dict) -> CurrentUser:
    return CurrentUser(
        user_id=payload.get("sub", ""),
        email=payload.get("email", ""),
        name=payload.get("name", "") or (payload.get("user_metadata") or {}).get("full_name", ""),
    )


async def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency that validates JWT and returns the current user.

    Raises 401 if no valid token is present.
    """
    if request.url.path in AUTH_EXEMPT_PATHS or not settings.auth_secret:
        return ANONYMOUS

    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    user = _user_from_payload(decode_token(token))
    if not user.user_id:
        raise HTTPException(status_code=401, detail="Invalid token: missing subject")
    return user

