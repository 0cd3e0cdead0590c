"""HTTP client for the tree REST API.

The client never manages credentials itself: a ``token_provider`` callable
returns the current bearer token for every request.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Optional

import requests

from .util import _compact_json

log = logging.getLogger(__name__)

_API_URL_ENV = "FAMTREE_API_URL"
_DEFAULT_API_URL = "http://localhost:8000"
_DEFAULT_TIMEOUT = 30

TokenProvider = Callable[[], Optional[str]]


class ApiError(Exception):
    """A non-2xx answer from the API (or a request we refused to send)."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403


def get_api_url() -> str:
    return os.environ.get(_API_URL_ENV) or _DEFAULT_API_URL


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "").strip() or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        msg = body.get("detail") or body.get("error")
        if msg:
            return str(msg)
    return f"HTTP {resp.status_code}"


class TreeApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token_provider: TokenProvider,
        session: Optional[requests.Session] = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or get_api_url()).rstrip("/")
        self._token_provider = token_provider
        self._session = session or requests.Session()
        self._timeout = timeout

    def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        token = self._token_provider()
        if not token:
            raise ApiError(401, "No auth token available")

        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
        }
        url = f"{self.base_url}{path}"
        resp = self._session.request(method, url, headers=headers, json=json, timeout=self._timeout)
        if not resp.ok:
            message = _error_message(resp)
            log.warning("%s %s failed: %s %s", method, path, resp.status_code, message)
            raise ApiError(resp.status_code, message)

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def fetch_tree(self, tree_id: str) -> dict[str, Any]:
        """``GET /api/tree/{id}`` -> ``{persons, relationships, name, role}``."""
        payload = self._request("GET", f"/api/tree/{tree_id}") or {}
        payload.setdefault("persons", [])
        payload.setdefault("relationships", [])
        return payload

    def create_person(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/api/person", json=_compact_json(payload) or {})

    def update_person(self, person_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/api/person/{person_id}", json=payload)

    def delete_person(self, person_id: str) -> None:
        self._request("DELETE", f"/api/person/{person_id}")

    def create_relationship(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/api/relationship", json=payload)

    def delete_relationship(self, relationship_id: str) -> None:
        self._request("DELETE", f"/api/relationship/{relationship_id}")
