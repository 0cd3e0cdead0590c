from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Path, Request

from ..auth import get_current_user
from ..db import db_conn
from ..queries import _fetch_persons, _fetch_relationships, _fetch_tree, _fetch_user_trees
from ..resolve import READ_ROLES, _authorize_tree

router = APIRouter()


@router.get("/trees")
def list_trees(request: Request) -> list[dict[str, Any]]:
    """Trees the caller owns or is a member of, each with the caller's ``role``."""
    user = get_current_user(request)
    with db_conn() as conn:
        return _fetch_user_trees(conn, user["id"])


@router.get("/tree/{tree_id}")
def get_tree(request: Request, tree_id: str = Path(min_length=1, max_length=64)) -> dict[str, Any]:
    """Everything a tree view needs: persons, relationships, name and the caller's role.

    The role decides whether the client offers edit controls; viewers get the
    same data and are read-only.
    """

    user = get_current_user(request)
    with db_conn() as conn:
        role = _authorize_tree(conn, tree_id, user, READ_ROLES)
        tree = _fetch_tree(conn, tree_id)
        if tree is None:
            raise HTTPException(status_code=404, detail=f"tree not found: {tree_id}")
        persons = _fetch_persons(conn, tree_id)
        relationships = _fetch_relationships(conn, tree_id)

    return {
        "tree": tree,
        "name": tree.get("name") or "",
        "role": role,
        "persons": persons,
        "relationships": relationships,
    }
