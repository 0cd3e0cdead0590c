"""Bearer-token helpers.

Tokens are issued by the external identity provider and signed with a shared
secret; this module only verifies them (PyJWT) and exposes the FastAPI
dependency that hands route handlers the current user. ``create_jwt`` mints
tokens in the same shape for local development and tests.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import HTTPException, Request

_JWT_SECRET_ENV = "JWT_SECRET"
_JWT_ALGORITHM = "HS256"
_JWT_LIFETIME_HOURS = 24
_BEARER_PREFIX = "bearer "


def _get_jwt_secret() -> str:
    secret = os.environ.get(_JWT_SECRET_ENV, "")
    if not secret:
        # Development fallback; never rely on it in production.
        secret = "dev-secret-change-me"
    return secret


def create_jwt(user_id: str, email: Optional[str] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=_JWT_LIFETIME_HOURS)).timestamp()),
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=_JWT_ALGORITHM)


def decode_jwt(token: str) -> dict[str, Any]:
    """Decode and verify a JWT.  Raises ``jwt.PyJWTError`` on failure."""
    # Provider tokens carry an audience we do not pin.
    return jwt.decode(
        token,
        _get_jwt_secret(),
        algorithms=[_JWT_ALGORITHM],
        options={"verify_aud": False},
    )


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    if not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX):].strip()
    return token or None


def get_current_user(request: Request) -> dict[str, Any]:
    """Extract the authenticated user from ``request.state`` (set by middleware).

    Raises 401 if not authenticated.
    """
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
