from __future__ import annotations

from typing import Any

import psycopg

from .serialize import (
    PERSON_COLUMNS,
    RELATIONSHIP_COLUMNS,
    TREE_COLUMNS,
    _person_row_to_dict,
    _relationship_row_to_dict,
    _tree_row_to_dict,
)

_PERSON_SELECT = ", ".join(PERSON_COLUMNS)
_RELATIONSHIP_SELECT = ", ".join(RELATIONSHIP_COLUMNS)
_TREE_SELECT = ", ".join(TREE_COLUMNS)


def _fetch_tree(conn: psycopg.Connection, tree_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        f"SELECT {_TREE_SELECT} FROM trees WHERE id = %s",
        (tree_id,),
    ).fetchone()
    return _tree_row_to_dict(row) if row else None


def _fetch_persons(conn: psycopg.Connection, tree_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        f"SELECT {_PERSON_SELECT} FROM persons WHERE tree_id = %s ORDER BY created_at, id",
        (tree_id,),
    ).fetchall()
    return [_person_row_to_dict(r) for r in rows]


def _fetch_relationships(conn: psycopg.Connection, tree_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        f"SELECT {_RELATIONSHIP_SELECT} FROM relationships WHERE tree_id = %s ORDER BY created_at, id",
        (tree_id,),
    ).fetchall()
    return [_relationship_row_to_dict(r) for r in rows]


def _fetch_user_trees(conn: psycopg.Connection, user_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        f"""
        SELECT {_TREE_SELECT}, 'owner' AS role
        FROM trees
        WHERE owner_id = %s
        UNION ALL
        SELECT {", ".join("t." + c for c in TREE_COLUMNS)}, m.role
        FROM trees t
        JOIN tree_members m ON m.tree_id = t.id
        WHERE m.user_id = %s AND t.owner_id <> %s
        ORDER BY created_at
        """.strip(),
        (user_id, user_id, user_id),
    ).fetchall()

    out: list[dict[str, Any]] = []
    for r in rows:
        r = tuple(r)
        tree = _tree_row_to_dict(r[: len(TREE_COLUMNS)])
        tree["role"] = str(r[len(TREE_COLUMNS)])
        out.append(tree)
    return out


def _fetch_life_events(conn: psycopg.Connection, person_ids: list[str]) -> list[dict[str, Any]]:
    if not person_ids:
        return []
    rows = conn.execute(
        """
        SELECT id, person_id, event_type, title, description, date
        FROM life_events
        WHERE person_id = ANY(%s)
        """.strip(),
        (person_ids,),
    ).fetchall()
    return [
        {
            "id": str(eid),
            "person_id": str(pid),
            "event_type": event_type,
            "title": title,
            "description": description,
            "date": d.isoformat() if d is not None else None,
        }
        for eid, pid, event_type, title, description, d in rows
    ]
