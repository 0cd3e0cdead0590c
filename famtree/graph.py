from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from .model import PARENT_CHILD_TYPES, SPOUSE_TYPE, Person, as_persons, as_relationships
from .traversal import PersonsArg, RelationshipsArg

_YEAR_RE = re.compile(r"\b(\d{4})\b")


def _year(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    m = _YEAR_RE.search(str(value))
    if not m:
        return None
    return int(m.group(1))


def _subline(person: Person) -> str:
    born = _year(person.dob)
    died = _year(person.dod)
    return f"{born if born is not None else '?'} - {died if died is not None else 'Present'}"


def person_node(person: Person, *, highlighted: bool = False) -> dict[str, Any]:
    return {
        "id": person.id,
        "person_id": person.id,
        "type": "person",
        "data": {
            "label": person.display_name,
            "subline": _subline(person),
            "highlighted": highlighted,
            "profile_photo_url": person.profile_photo_url,
            "bio": person.bio,
        },
        "position": {"x": 0, "y": 0},
    }


def build_graph_elements(
    persons: PersonsArg,
    relationships: RelationshipsArg,
    *,
    highlighted: Iterable[str] = (),
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Return ``(nodes, edges)`` ready for layout.

    A relationship whose endpoints are not both in ``persons`` (or whose type
    is unknown) produces no edge.
    """

    persons_l = as_persons(persons)
    marked = set(highlighted)
    nodes = [person_node(p, highlighted=p.id in marked) for p in persons_l]
    known = {p.id for p in persons_l}

    edges: list[dict[str, Any]] = []
    for r in as_relationships(relationships):
        if r.person_1_id not in known or r.person_2_id not in known:
            continue
        if r.type not in PARENT_CHILD_TYPES and r.type != SPOUSE_TYPE:
            continue
        edges.append(
            {
                "id": r.id,
                "source": r.person_1_id,
                "target": r.person_2_id,
                "relationship_type": r.type,
            }
        )
    return nodes, edges


def filter_elements(
    nodes: Iterable[dict[str, Any]],
    edges: Iterable[dict[str, Any]],
    keep_ids: Iterable[str],
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    keep = set(keep_ids)
    kept_nodes = [n for n in nodes if n.get("id") in keep]
    kept_edges = [e for e in edges if e.get("source") in keep and e.get("target") in keep]
    return kept_nodes, kept_edges
