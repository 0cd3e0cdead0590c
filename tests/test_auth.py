"""Unit tests for famtree/auth.py and famtree/middleware.py: JWT, bearer parsing, current user."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import patch

import jwt as pyjwt
import pytest
from fastapi import HTTPException

from famtree.auth import bearer_token, create_jwt, decode_jwt, get_current_user
from famtree.middleware import AuthMiddleware, _is_public


# ---------------------------------------------------------------------------
# JWT create / decode
# ---------------------------------------------------------------------------


class TestJWT:
    @patch.dict("os.environ", {"JWT_SECRET": "test-secret-key"})
    def test_create_and_decode_round_trip(self) -> None:
        token = create_jwt(user_id=42, email="jan@example.org")
        claims = decode_jwt(token)
        assert claims["sub"] == "42"
        assert claims["email"] == "jan@example.org"
        assert "iat" in claims
        assert "exp" in claims

    @patch.dict("os.environ", {"JWT_SECRET": "secret-A"})
    def test_wrong_secret_fails(self) -> None:
        token = create_jwt(user_id="1")
        with patch.dict("os.environ", {"JWT_SECRET": "secret-B"}):
            with pytest.raises(pyjwt.InvalidSignatureError):
                decode_jwt(token)

    @patch.dict("os.environ", {"JWT_SECRET": "test-secret-key"})
    def test_expired_token_raises(self) -> None:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": "1",
            "iat": int((now - timedelta(hours=48)).timestamp()),
            "exp": int((now - timedelta(hours=24)).timestamp()),
        }
        token = pyjwt.encode(payload, "test-secret-key", algorithm="HS256")
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    @patch.dict("os.environ", {"JWT_SECRET": "test-secret-key"})
    def test_audience_is_not_pinned(self) -> None:
        token = pyjwt.encode({"sub": "1", "aud": "authenticated"}, "test-secret-key", algorithm="HS256")
        assert decode_jwt(token)["sub"] == "1"


class TestBearerToken:
    def test_parses_header(self) -> None:
        assert bearer_token("Bearer abc.def") == "abc.def"
        assert bearer_token("bearer   xyz ") == "xyz"

    def test_rejects_other_schemes(self) -> None:
        assert bearer_token(None) is None
        assert bearer_token("Basic dXNlcjpwdw==") is None
        assert bearer_token("Bearer ") is None


# ---------------------------------------------------------------------------
# get_current_user
# ---------------------------------------------------------------------------


class _FakeState:
    pass


class _FakeRequest:
    def __init__(self, user: dict | None = None) -> None:
        self.state = _FakeState()
        if user is not None:
            self.state.user = user


class TestGetCurrentUser:
    def test_returns_user_when_present(self) -> None:
        req = _FakeRequest(user={"id": "u1", "email": None})
        assert get_current_user(req)["id"] == "u1"

    def test_raises_401_when_no_user(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_FakeRequest())
        assert exc_info.value.status_code == 401


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class _FakeURL:
    def __init__(self, path: str) -> None:
        self.path = path


class _FakeHTTPRequest:
    def __init__(self, path: str, headers: dict[str, str] | None = None) -> None:
        self.url = _FakeURL(path)
        self.headers = headers or {}
        self.state = _FakeState()


def _dispatch(request: _FakeHTTPRequest) -> tuple[Any, list[_FakeHTTPRequest]]:
    passed: list[_FakeHTTPRequest] = []

    async def call_next(req: _FakeHTTPRequest) -> str:
        passed.append(req)
        return "downstream"

    async def _noop_app(scope, receive, send) -> None:
        return None

    middleware = AuthMiddleware(_noop_app)
    return asyncio.run(middleware.dispatch(request, call_next)), passed


class TestAuthMiddleware:
    def test_public_paths(self) -> None:
        assert _is_public("/health")
        assert _is_public("/openapi.json")
        assert not _is_public("/api/tree/t1")

    def test_public_path_skips_auth(self) -> None:
        out, passed = _dispatch(_FakeHTTPRequest("/health"))
        assert out == "downstream"
        assert len(passed) == 1

    def test_missing_header_is_401(self) -> None:
        out, passed = _dispatch(_FakeHTTPRequest("/api/trees"))
        assert out.status_code == 401
        assert passed == []

    @patch.dict("os.environ", {"JWT_SECRET": "test-secret-key"})
    def test_invalid_token_is_401(self) -> None:
        out, _ = _dispatch(_FakeHTTPRequest("/api/trees", {"authorization": "Bearer not-a-jwt"}))
        assert out.status_code == 401

    @patch.dict("os.environ", {"JWT_SECRET": "test-secret-key"})
    def test_valid_token_sets_user(self) -> None:
        token = create_jwt("u7", email="u7@example.org")
        req = _FakeHTTPRequest("/api/trees", {"authorization": f"Bearer {token}"})
        out, passed = _dispatch(req)
        assert out == "downstream"
        assert passed[0].state.user == {"id": "u7", "email": "u7@example.org"}
