from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

from .model import GraphModel, Person, Relationship

PersonsArg = Iterable[Person | Mapping[str, Any]]
RelationshipsArg = Iterable[Relationship | Mapping[str, Any]]

DEFAULT_MAX_DEPTH = 5


def _closure(start: str, step: Callable[[str], Iterable[str]]) -> list[str]:
    """Breadth-first closure from ``start`` over ``step``; ``start`` comes first.

    The ``seen`` set is what terminates the walk on cyclic parent/child data.
    """

    seen: set[str] = {start}
    order = [start]
    frontier = [start]
    while frontier:
        next_frontier: list[str] = []
        for node in frontier:
            for nb in step(node):
                if nb in seen:
                    continue
                seen.add(nb)
                order.append(nb)
                next_frontier.append(nb)
        frontier = next_frontier
    return order


def descendant_ids(root_id: str, persons: PersonsArg, relationships: RelationshipsArg) -> list[str]:
    model = GraphModel(persons, relationships)
    return _closure(root_id, model.children_of)


def ancestor_ids(root_id: str, persons: PersonsArg, relationships: RelationshipsArg) -> list[str]:
    model = GraphModel(persons, relationships)
    return _closure(root_id, model.parents_of)


def _build_tree(
    model: GraphModel,
    person_id: str,
    *,
    step: Callable[[str], Iterable[str]],
    key: str,
    max_depth: int,
) -> Optional[dict[str, Any]]:
    root = model.person(person_id)
    if root is None:
        return None

    def _expand(person: Person, depth: int) -> dict[str, Any]:
        node = person.to_dict()
        node["generation"] = depth
        if depth >= max_depth:
            node[key] = []
            return node
        # No dedup across branches: the same ancestor may appear on several paths.
        node[key] = [
            _expand(model.person(rel_id), depth + 1)
            for rel_id in step(person.id)
            if model.has_person(rel_id)
        ]
        return node

    return _expand(root, 0)


def build_ancestor_tree(
    person_id: str,
    persons: PersonsArg,
    relationships: RelationshipsArg,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Optional[dict[str, Any]]:
    """Return ``person_id`` with a recursive ``parents`` list, ``max_depth`` generations deep."""

    model = GraphModel(persons, relationships)
    return _build_tree(model, person_id, step=model.parents_of, key="parents", max_depth=max_depth)


def build_descendant_tree(
    person_id: str,
    persons: PersonsArg,
    relationships: RelationshipsArg,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Optional[dict[str, Any]]:
    model = GraphModel(persons, relationships)
    return _build_tree(model, person_id, step=model.children_of, key="children", max_depth=max_depth)


@dataclass
class FocusSubgraph:
    person_ids: list[str]
    persons: list[Person] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)


def _subgraph(model: GraphModel, ordered_ids: list[str]) -> FocusSubgraph:
    keep = set(ordered_ids)
    return FocusSubgraph(
        person_ids=list(ordered_ids),
        persons=[p for p in model.persons if p.id in keep],
        relationships=[
            r for r in model.relationships if r.person_1_id in keep and r.person_2_id in keep
        ],
    )


def lineage_focus(person_id: str, persons: PersonsArg, relationships: RelationshipsArg) -> FocusSubgraph:
    """Ancestors and descendants of ``person_id``, plus the spouses of all of them.

    Edges are kept only when both endpoints are in the resulting node set, and
    only relationships already present in ``relationships`` are considered.
    """

    model = GraphModel(persons, relationships)

    ordered: list[str] = []
    seen: set[str] = set()

    def _take(ids: Iterable[str]) -> None:
        for pid in ids:
            if pid not in seen:
                seen.add(pid)
                ordered.append(pid)

    _take(_closure(person_id, model.parents_of))
    _take(_closure(person_id, model.children_of))
    for pid in list(ordered):
        _take(model.spouses_of(pid))

    return _subgraph(model, ordered)


def descendant_subgraph(root_id: str, persons: PersonsArg, relationships: RelationshipsArg) -> FocusSubgraph:
    model = GraphModel(persons, relationships)
    return _subgraph(model, _closure(root_id, model.children_of))
