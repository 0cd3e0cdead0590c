"""Layered (Sugiyama-style) layout for family graphs.

Three passes, recomputed from scratch on every call:

1. rank: longest path from the sources over parent/child edges, after
   dropping DFS back edges so cyclic input still gets a rank. Spouse edges
   never add a rank; they only pull partners onto the same rank.
2. order: barycenter sweeps within each rank, partners kept side by side.
3. coordinates: rank on the primary axis, order on the secondary axis, each
   rank centred on the widest one.

Output positions are the top-left corner of each node rectangle.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping

from .model import SPOUSE_TYPE


class Direction(str, Enum):
    TB = "TB"
    LR = "LR"


NODE_WIDTH = 256
NODE_HEIGHT = 80
NODE_SEPARATION = 50
RANK_SEPARATION = 50

_ORDER_SWEEPS = 4

_HANDLES = {
    Direction.TB: ("top", "bottom"),
    Direction.LR: ("left", "right"),
}


def _edge_kind(edge: Mapping[str, Any]) -> str:
    return str(edge.get("relationship_type") or edge.get("type") or "")


def _split_edges(
    edges: Iterable[Mapping[str, Any]], node_ids: set[str]
) -> tuple[list[tuple[str, str]], list[tuple[str, str]]]:
    directed: list[tuple[str, str]] = []
    spouses: list[tuple[str, str]] = []
    seen: set[tuple[str, str]] = set()
    for e in edges or ():
        src = str(e.get("source"))
        tgt = str(e.get("target"))
        # Edges pointing at nodes we were not given are ignored.
        if src not in node_ids or tgt not in node_ids or src == tgt:
            continue
        if _edge_kind(e) == SPOUSE_TYPE:
            spouses.append((src, tgt))
            continue
        if (src, tgt) in seen:
            continue
        seen.add((src, tgt))
        directed.append((src, tgt))
    return directed, spouses


def _drop_back_edges(node_ids: list[str], edges: list[tuple[str, str]]) -> list[tuple[str, str]]:
    succ: dict[str, list[str]] = {nid: [] for nid in node_ids}
    for s, t in edges:
        succ[s].append(t)

    on_stack = 1
    done = 2
    state: dict[str, int] = {}
    back: set[tuple[str, str]] = set()

    for start in node_ids:
        if start in state:
            continue
        state[start] = on_stack
        stack = [(start, iter(succ[start]))]
        while stack:
            node, it = stack[-1]
            nxt = next(it, None)
            if nxt is None:
                state[node] = done
                stack.pop()
                continue
            st = state.get(nxt)
            if st == on_stack:
                back.add((node, nxt))
            elif st is None:
                state[nxt] = on_stack
                stack.append((nxt, iter(succ[nxt])))

    return [e for e in edges if e not in back]


def _topological_order(node_ids: list[str], edges: list[tuple[str, str]]) -> list[str]:
    indegree = {nid: 0 for nid in node_ids}
    succ: dict[str, list[str]] = {nid: [] for nid in node_ids}
    for s, t in edges:
        succ[s].append(t)
        indegree[t] += 1

    order: list[str] = []
    frontier = [nid for nid in node_ids if indegree[nid] == 0]
    while frontier:
        next_frontier: list[str] = []
        for node in frontier:
            order.append(node)
            for nb in succ[node]:
                indegree[nb] -= 1
                if indegree[nb] == 0:
                    next_frontier.append(nb)
        frontier = next_frontier
    return order


def _assign_ranks(
    node_ids: list[str],
    directed: list[tuple[str, str]],
    spouses: list[tuple[str, str]],
) -> dict[str, int]:
    dag = _drop_back_edges(node_ids, directed)
    topo = _topological_order(node_ids, dag)
    preds: dict[str, list[str]] = {nid: [] for nid in node_ids}
    for s, t in dag:
        preds[t].append(s)

    ranks = {nid: 0 for nid in node_ids}

    def _propagate() -> None:
        for node in topo:
            for p in preds[node]:
                if ranks[p] + 1 > ranks[node]:
                    ranks[node] = ranks[p] + 1

    _propagate()

    # A partner may also be an ancestor of the other; cap the rounds so such
    # input cannot raise ranks forever.
    for _ in range(len(node_ids)):
        changed = False
        for a, b in spouses:
            if ranks[a] != ranks[b]:
                ranks[a] = ranks[b] = max(ranks[a], ranks[b])
                changed = True
        if not changed:
            break
        _propagate()

    compact = {r: i for i, r in enumerate(sorted(set(ranks.values())))}
    return {nid: compact[r] for nid, r in ranks.items()}


def _group_partners(layer: list[str], partners: dict[str, list[str]]) -> list[str]:
    members = set(layer)
    placed: set[str] = set()
    out: list[str] = []
    for nid in layer:
        if nid in placed:
            continue
        out.append(nid)
        placed.add(nid)
        for sp in partners.get(nid, ()):
            if sp in members and sp not in placed:
                out.append(sp)
                placed.add(sp)
    return out


def _order_layers(
    node_ids: list[str],
    ranks: dict[str, int],
    directed: list[tuple[str, str]],
    spouses: list[tuple[str, str]],
) -> list[list[str]]:
    depth = max(ranks.values()) + 1
    layers: list[list[str]] = [[] for _ in range(depth)]
    for nid in node_ids:
        layers[ranks[nid]].append(nid)

    neighbors: dict[str, list[str]] = {nid: [] for nid in node_ids}
    for s, t in directed:
        neighbors[s].append(t)
        neighbors[t].append(s)
    partners: dict[str, list[str]] = {}
    for a, b in spouses:
        partners.setdefault(a, []).append(b)
        partners.setdefault(b, []).append(a)

    def _reorder(r: int, use_upper: bool) -> None:
        index = {nid: i for layer in layers for i, nid in enumerate(layer)}
        keys: dict[str, float] = {}
        for nid in layers[r]:
            refs = [
                index[nb]
                for nb in neighbors[nid]
                if (ranks[nb] < r if use_upper else ranks[nb] > r)
            ]
            keys[nid] = sum(refs) / len(refs) if refs else float(index[nid])
        ordered = sorted(layers[r], key=lambda nid: (keys[nid], index[nid]))
        layers[r] = _group_partners(ordered, partners)

    for r in range(depth):
        layers[r] = _group_partners(layers[r], partners)

    for _ in range(_ORDER_SWEEPS):
        for r in range(1, depth):
            _reorder(r, use_upper=True)
        for r in range(depth - 2, -1, -1):
            _reorder(r, use_upper=False)

    return layers


def _assign_centers(
    layers: list[list[str]],
    direction: Direction,
    *,
    node_width: float,
    node_height: float,
    node_separation: float,
    rank_separation: float,
) -> dict[str, tuple[float, float]]:
    if direction is Direction.TB:
        primary_extent, secondary_extent = node_height, node_width
    else:
        primary_extent, secondary_extent = node_width, node_height

    rank_step = primary_extent + rank_separation
    order_step = secondary_extent + node_separation
    widest = max((len(layer) - 1) * order_step for layer in layers)

    centers: dict[str, tuple[float, float]] = {}
    for r, layer in enumerate(layers):
        offset = (widest - (len(layer) - 1) * order_step) / 2
        primary = r * rank_step + primary_extent / 2
        for i, nid in enumerate(layer):
            secondary = offset + i * order_step + secondary_extent / 2
            if direction is Direction.TB:
                centers[nid] = (secondary, primary)
            else:
                centers[nid] = (primary, secondary)
    return centers


def layout_elements(
    nodes: Iterable[Mapping[str, Any]],
    edges: Iterable[Mapping[str, Any]],
    *,
    direction: Direction | str = Direction.TB,
    node_width: float = NODE_WIDTH,
    node_height: float = NODE_HEIGHT,
    node_separation: float = NODE_SEPARATION,
    rank_separation: float = RANK_SEPARATION,
) -> list[dict[str, Any]]:
    """Return copies of ``nodes`` with ``position`` and handle orientation set.

    ``edges`` use ``source`` / ``target`` keys; an edge whose
    ``relationship_type`` is ``spouse`` does not separate its ends by rank.
    """

    direction = Direction(direction)
    nodes = list(nodes or ())
    if not nodes:
        return []

    node_ids: list[str] = []
    for n in nodes:
        nid = str(n["id"])
        if nid not in node_ids:
            node_ids.append(nid)

    directed, spouses = _split_edges(edges, set(node_ids))
    ranks = _assign_ranks(node_ids, directed, spouses)
    layers = _order_layers(node_ids, ranks, directed, spouses)
    centers = _assign_centers(
        layers,
        direction,
        node_width=node_width,
        node_height=node_height,
        node_separation=node_separation,
        rank_separation=rank_separation,
    )

    target_position, source_position = _HANDLES[direction]
    out: list[dict[str, Any]] = []
    for n in nodes:
        cx, cy = centers[str(n["id"])]
        placed = dict(n)
        placed["position"] = {"x": cx - node_width / 2, "y": cy - node_height / 2}
        placed["target_position"] = target_position
        placed["source_position"] = source_position
        out.append(placed)
    return out
