from __future__ import annotations

from typing import Any

import psycopg
from fastapi import HTTPException

EDIT_ROLES = ("owner", "editor")
READ_ROLES = ("owner", "editor", "viewer")


def _tree_role(conn: psycopg.Connection, tree_id: str, user_id: str) -> str:
    """Return the caller's role on a tree: owner, editor or viewer.

    404 if the tree does not exist, 403 if the caller is not a member.
    """

    row = conn.execute(
        "SELECT owner_id FROM trees WHERE id = %s",
        (tree_id,),
    ).fetchone()
    if not row:
        raise HTTPException(status_code=404, detail=f"tree not found: {tree_id}")
    if str(row[0]) == str(user_id):
        return "owner"

    member = conn.execute(
        "SELECT role FROM tree_members WHERE tree_id = %s AND user_id = %s",
        (tree_id, user_id),
    ).fetchone()
    if not member:
        raise HTTPException(status_code=403, detail="You do not have access to this tree")
    return str(member[0])


def _require_role(role: str, allowed: tuple[str, ...]) -> None:
    if role not in allowed:
        raise HTTPException(status_code=403, detail="Insufficient permissions")


def _entity_tree_id(conn: psycopg.Connection, table: str, entity_id: str) -> str:
    # table is always one of our own literals, never user input.
    row = conn.execute(
        f"SELECT tree_id FROM {table} WHERE id = %s",
        (entity_id,),
    ).fetchone()
    if not row:
        raise HTTPException(status_code=404, detail=f"{table[:-1]} not found: {entity_id}")
    return str(row[0])


def _person_tree_id(conn: psycopg.Connection, person_id: str) -> str:
    return _entity_tree_id(conn, "persons", person_id)


def _relationship_tree_id(conn: psycopg.Connection, relationship_id: str) -> str:
    return _entity_tree_id(conn, "relationships", relationship_id)


def _authorize_tree(conn: psycopg.Connection, tree_id: str, user: dict[str, Any], allowed: tuple[str, ...]) -> str:
    role = _tree_role(conn, tree_id, user["id"])
    _require_role(role, allowed)
    return role
