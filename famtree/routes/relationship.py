from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Path, Request, Response
from pydantic import BaseModel, Field, model_validator

from ..auth import get_current_user
from ..db import db_conn
from ..model import RelationshipType
from ..resolve import EDIT_ROLES, _authorize_tree, _relationship_tree_id
from ..serialize import RELATIONSHIP_COLUMNS, _relationship_row_to_dict

log = logging.getLogger(__name__)

router = APIRouter()


class RelationshipCreate(BaseModel):
    tree_id: str = Field(min_length=1, max_length=64)
    person_1_id: str = Field(min_length=1, max_length=64)
    person_2_id: str = Field(min_length=1, max_length=64)
    type: RelationshipType

    @model_validator(mode="after")
    def _distinct_people(self) -> "RelationshipCreate":
        if self.person_1_id == self.person_2_id:
            raise ValueError("Cannot create relationship with self")
        return self


@router.post("/relationship", status_code=201)
def create_relationship(body: RelationshipCreate, request: Request) -> dict[str, Any]:
    """Link two people of the same tree.

    Cycles and multiple spouses are accepted as-is; readers of the graph
    tolerate both.
    """

    user = get_current_user(request)
    with db_conn() as conn:
        _authorize_tree(conn, body.tree_id, user, EDIT_ROLES)

        found = conn.execute(
            "SELECT id FROM persons WHERE tree_id = %s AND id = ANY(%s)",
            (body.tree_id, [body.person_1_id, body.person_2_id]),
        ).fetchall()
        if len({str(r[0]) for r in found}) != 2:
            raise HTTPException(status_code=400, detail="Both people must belong to the tree")

        row = conn.execute(
            f"""
            INSERT INTO relationships (tree_id, person_1_id, person_2_id, type)
            VALUES (%s, %s, %s, %s)
            RETURNING {", ".join(RELATIONSHIP_COLUMNS)}
            """.strip(),
            (body.tree_id, body.person_1_id, body.person_2_id, body.type.value),
        ).fetchone()
        conn.commit()

    rel = _relationship_row_to_dict(row)
    log.info("relationship %s (%s) created in tree %s", rel["id"], rel["type"], body.tree_id)
    return rel


@router.delete("/relationship/{relationship_id}", status_code=204)
def delete_relationship(request: Request, relationship_id: str = Path(min_length=1, max_length=64)) -> Response:
    user = get_current_user(request)
    with db_conn() as conn:
        tree_id = _relationship_tree_id(conn, relationship_id)
        _authorize_tree(conn, tree_id, user, EDIT_ROLES)
        conn.execute("DELETE FROM relationships WHERE id = %s", (relationship_id,))
        conn.commit()
    return Response(status_code=204)
