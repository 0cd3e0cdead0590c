from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Request

from ..auth import get_current_user
from ..charts import FAN_GENERATIONS, descendant_chart, fan_segments, parent_for_refocus
from ..db import db_conn
from ..graph import build_graph_elements
from ..layout import layout_elements
from ..model import GraphModel
from ..queries import _fetch_life_events, _fetch_persons, _fetch_relationships
from ..resolve import READ_ROLES, _authorize_tree
from ..timeline import aggregate_timeline
from ..traversal import DEFAULT_MAX_DEPTH, build_ancestor_tree, build_descendant_tree, lineage_focus

log = logging.getLogger(__name__)

router = APIRouter()

# Hard guardrail; deep recursive payloads grow exponentially with pedigree collapse.
_MAX_DEPTH_LIMIT = 12


def _load_tree(request: Request, tree_id: str) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    user = get_current_user(request)
    with db_conn() as conn:
        _authorize_tree(conn, tree_id, user, READ_ROLES)
        persons = _fetch_persons(conn, tree_id)
        relationships = _fetch_relationships(conn, tree_id)
    return persons, relationships


def _require_person(model: GraphModel, person_id: str) -> None:
    if not model.has_person(person_id):
        raise HTTPException(status_code=404, detail=f"person not found: {person_id}")


@router.get("/tree/{tree_id}/graph")
def tree_graph(
    request: Request,
    tree_id: str = Path(min_length=1, max_length=64),
    direction: Literal["TB", "LR"] = "TB",
    focus: Optional[str] = Query(default=None, max_length=64),
) -> dict[str, Any]:
    """Laid-out nodes and edges for the whole tree.

    With ``focus`` only that person's lineage (ancestors, descendants and
    their spouses) is returned, highlighted at the focus person.
    """

    persons, relationships = _load_tree(request, tree_id)
    highlighted: list[str] = []
    if focus:
        _require_person(GraphModel(persons, relationships), focus)
        sub = lineage_focus(focus, persons, relationships)
        persons, relationships = sub.persons, sub.relationships
        highlighted = [focus]

    nodes, edges = build_graph_elements(persons, relationships, highlighted=highlighted)
    return {
        "direction": direction,
        "focus": focus,
        "nodes": layout_elements(nodes, edges, direction=direction),
        "edges": edges,
    }


@router.get("/tree/{tree_id}/ancestors/{person_id}")
def ancestors(
    request: Request,
    tree_id: str = Path(min_length=1, max_length=64),
    person_id: str = Path(min_length=1, max_length=64),
    max_depth: int = Query(default=DEFAULT_MAX_DEPTH, ge=0, le=_MAX_DEPTH_LIMIT),
) -> dict[str, Any]:
    persons, relationships = _load_tree(request, tree_id)
    tree = build_ancestor_tree(person_id, persons, relationships, max_depth=max_depth)
    if tree is None:
        raise HTTPException(status_code=404, detail=f"person not found: {person_id}")
    return tree


@router.get("/tree/{tree_id}/descendants/{person_id}")
def descendants(
    request: Request,
    tree_id: str = Path(min_length=1, max_length=64),
    person_id: str = Path(min_length=1, max_length=64),
    max_depth: int = Query(default=DEFAULT_MAX_DEPTH, ge=0, le=_MAX_DEPTH_LIMIT),
) -> dict[str, Any]:
    persons, relationships = _load_tree(request, tree_id)
    tree = build_descendant_tree(person_id, persons, relationships, max_depth=max_depth)
    if tree is None:
        raise HTTPException(status_code=404, detail=f"person not found: {person_id}")
    return tree


@router.get("/tree/{tree_id}/descendant-chart/{person_id}")
def descendant_chart_view(
    request: Request,
    tree_id: str = Path(min_length=1, max_length=64),
    person_id: str = Path(min_length=1, max_length=64),
) -> dict[str, Any]:
    persons, relationships = _load_tree(request, tree_id)
    _require_person(GraphModel(persons, relationships), person_id)
    nodes, edges = descendant_chart(person_id, persons, relationships)
    return {"root_id": person_id, "nodes": nodes, "edges": edges}


@router.get("/tree/{tree_id}/fan/{person_id}")
def fan_chart(
    request: Request,
    tree_id: str = Path(min_length=1, max_length=64),
    person_id: str = Path(min_length=1, max_length=64),
    generations: int = Query(default=FAN_GENERATIONS, ge=1, le=8),
) -> dict[str, Any]:
    persons, relationships = _load_tree(request, tree_id)
    tree = build_ancestor_tree(person_id, persons, relationships, max_depth=generations)
    if tree is None:
        raise HTTPException(status_code=404, detail=f"person not found: {person_id}")
    return {
        "root_id": person_id,
        "parent_id": parent_for_refocus(person_id, relationships),
        "generations": generations,
        "segments": fan_segments(tree, generations=generations),
    }


@router.get("/tree/{tree_id}/timeline")
def timeline(request: Request, tree_id: str = Path(min_length=1, max_length=64)) -> list[dict[str, Any]]:
    user = get_current_user(request)
    with db_conn() as conn:
        _authorize_tree(conn, tree_id, user, READ_ROLES)
        persons = _fetch_persons(conn, tree_id)
        life_events = _fetch_life_events(conn, [p["id"] for p in persons])

    events = aggregate_timeline(persons, life_events)
    log.debug("timeline for tree %s: %d events", tree_id, len(events))
    return events
