"""Person CRUD routes.

Owners and editors may write; deleting a person also deletes every
relationship that references them.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Path, Request, Response
from pydantic import BaseModel, Field, field_validator, model_validator

from ..auth import get_current_user
from ..db import db_conn
from ..model import Gender
from ..resolve import EDIT_ROLES, _authorize_tree, _person_tree_id
from ..serialize import PERSON_COLUMNS, _person_row_to_dict

log = logging.getLogger(__name__)

router = APIRouter()

_PERSON_SELECT = ", ".join(PERSON_COLUMNS)

# Writable columns; also the whitelist for dynamic UPDATE statements.
_WRITABLE = (
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


def _check_dates(dob: Optional[date], dod: Optional[date]) -> None:
    today = date.today()
    if dob is not None and dob > today:
        raise ValueError("Date of birth cannot be in the future")
    if dod is not None and dod > today:
        raise ValueError("Date of death cannot be in the future")
    if dob is not None and dod is not None and dod < dob:
        raise ValueError("Date of death cannot be before date of birth")


class PersonFields(BaseModel):
    last_name: Optional[str] = Field(default=None, max_length=100)
    gender: Optional[Gender] = None
    dob: Optional[date] = None
    dod: Optional[date] = None
    pob: Optional[str] = Field(default=None, max_length=200)
    bio: Optional[str] = Field(default=None, max_length=5000)
    occupation: Optional[str] = Field(default=None, max_length=200)
    profile_photo_url: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _dates_are_plausible(self) -> "PersonFields":
        _check_dates(self.dob, self.dod)
        return self


class PersonCreate(PersonFields):
    tree_id: str = Field(min_length=1, max_length=64)
    first_name: str = Field(min_length=1, max_length=100)


class PersonUpdate(PersonFields):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)

    @field_validator("first_name")
    @classmethod
    def _first_name_not_null(cls, value: Optional[str]) -> str:
        # Omitting first_name leaves it unchanged; an explicit null would clear a required column.
        if value is None:
            raise ValueError("first_name cannot be null")
        return value


def _db_value(value: Any) -> Any:
    if isinstance(value, Gender):
        return value.value
    return value


@router.post("/person", status_code=201)
def create_person(body: PersonCreate, request: Request) -> dict[str, Any]:
    user = get_current_user(request)
    values = {col: _db_value(getattr(body, col)) for col in _WRITABLE}
    if values["gender"] is None:
        values["gender"] = Gender.UNKNOWN.value

    with db_conn() as conn:
        _authorize_tree(conn, body.tree_id, user, EDIT_ROLES)
        cols = ("tree_id",) + _WRITABLE
        row = conn.execute(
            f"""
            INSERT INTO persons ({", ".join(cols)})
            VALUES ({", ".join(["%s"] * len(cols))})
            RETURNING {_PERSON_SELECT}
            """.strip(),
            (body.tree_id, *[values[c] for c in _WRITABLE]),
        ).fetchone()
        conn.commit()

    person = _person_row_to_dict(row)
    log.info("person %s created in tree %s", person["id"], body.tree_id)
    return person


@router.put("/person/{person_id}")
def update_person(
    body: PersonUpdate,
    request: Request,
    person_id: str = Path(min_length=1, max_length=64),
) -> dict[str, Any]:
    user = get_current_user(request)
    updates = {k: _db_value(v) for k, v in body.model_dump(exclude_unset=True).items() if k in _WRITABLE}
    if not updates:
        raise HTTPException(status_code=400, detail="At least one field must be provided")

    with db_conn() as conn:
        tree_id = _person_tree_id(conn, person_id)
        _authorize_tree(conn, tree_id, user, EDIT_ROLES)

        current = conn.execute(
            "SELECT dob, dod FROM persons WHERE id = %s",
            (person_id,),
        ).fetchone()
        if current:
            try:
                _check_dates(updates.get("dob", current[0]), updates.get("dod", current[1]))
            except ValueError as exc:
                raise HTTPException(status_code=422, detail=str(exc)) from exc

        assignments = ", ".join(f"{col} = %s" for col in updates)
        row = conn.execute(
            f"UPDATE persons SET {assignments} WHERE id = %s RETURNING {_PERSON_SELECT}",
            (*updates.values(), person_id),
        ).fetchone()
        conn.commit()

    return _person_row_to_dict(row)


@router.delete("/person/{person_id}", status_code=204)
def delete_person(request: Request, person_id: str = Path(min_length=1, max_length=64)) -> Response:
    user = get_current_user(request)
    with db_conn() as conn:
        tree_id = _person_tree_id(conn, person_id)
        _authorize_tree(conn, tree_id, user, EDIT_ROLES)
        conn.execute(
            "DELETE FROM relationships WHERE person_1_id = %s OR person_2_id = %s",
            (person_id, person_id),
        )
        conn.execute("DELETE FROM persons WHERE id = %s", (person_id,))
        conn.commit()

    log.info("person %s deleted from tree %s", person_id, tree_id)
    return Response(status_code=204)
