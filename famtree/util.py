from __future__ import annotations

from typing import Any


def _compact_json(value: Any) -> Any:
    """Drop empty values from a request payload, recursively.

    ``None``, blank strings and empty containers disappear (strings are
    stripped); ``0`` and ``False`` are real values and stay. Returns ``None``
    when nothing is left, so optional person fields are omitted rather than
    sent as empty strings the server would reject.
    """

    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        kept = {k: v for k, v in ((k, _compact_json(v)) for k, v in value.items()) if v is not None}
        return kept or None
    if isinstance(value, (list, tuple)):
        items = [v for v in (_compact_json(item) for item in value) if v is not None]
        return items or None
    return value
