"""Request-level authentication middleware.

Reads the bearer token from the ``Authorization`` header, validates it, and
populates ``request.state.user`` (dict with ``id`` and ``email``).
Unauthenticated requests to protected paths get a 401.
"""

from __future__ import annotations

import re

import jwt as pyjwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .auth import bearer_token, decode_jwt

# Paths that do NOT require authentication.
_PUBLIC_PATHS: list[re.Pattern[str]] = [
    re.compile(r"^/health$"),
    re.compile(r"^/docs$"),
    re.compile(r"^/openapi\.json$"),
]


def _is_public(path: str) -> bool:
    for pat in _PUBLIC_PATHS:
        if pat.search(path):
            return True
    return False


class AuthMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that enforces bearer-token authentication."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        token = bearer_token(request.headers.get("authorization"))
        if not token:
            return JSONResponse({"detail": "Missing authorization header"}, status_code=401)

        try:
            claims = decode_jwt(token)
        except pyjwt.ExpiredSignatureError:
            return JSONResponse({"detail": "Session expired"}, status_code=401)
        except pyjwt.PyJWTError:
            return JSONResponse({"detail": "Invalid token"}, status_code=401)

        sub = claims.get("sub")
        if not sub:
            return JSONResponse({"detail": "Invalid token"}, status_code=401)

        request.state.user = {"id": str(sub), "email": claims.get("email")}
        return await call_next(request)
