from __future__ import annotations

from datetime import date, datetime
from typing import Any

PERSON_COLUMNS = (
    "id",
    "tree_id",
    "first_name",
    "last_name",
    "gender",
    "dob",
    "dod",
    "pob",
    "bio",
    "occupation",
    "profile_photo_url",
)

RELATIONSHIP_COLUMNS = ("id", "tree_id", "person_1_id", "person_2_id", "type")

TREE_COLUMNS = ("id", "name", "description", "owner_id", "created_at")


def _json_value(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _row_to_dict(columns: tuple[str, ...], r: tuple[Any, ...]) -> dict[str, Any]:
    out = {col: _json_value(value) for col, value in zip(columns, r)}
    for key in ("id", "tree_id", "owner_id", "person_1_id", "person_2_id"):
        if out.get(key) is not None:
            out[key] = str(out[key])
    return out


def _person_row_to_dict(r: tuple[Any, ...]) -> dict[str, Any]:
    # r follows PERSON_COLUMNS
    return _row_to_dict(PERSON_COLUMNS, tuple(r))


def _relationship_row_to_dict(r: tuple[Any, ...]) -> dict[str, Any]:
    return _row_to_dict(RELATIONSHIP_COLUMNS, tuple(r))


def _tree_row_to_dict(r: tuple[Any, ...]) -> dict[str, Any]:
    return _row_to_dict(TREE_COLUMNS, tuple(r))
