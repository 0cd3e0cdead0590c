"""Geometry for the fan chart and the descendant chart."""

from __future__ import annotations

import math
from typing import Any, Optional

from .graph import build_graph_elements
from .layout import Direction, layout_elements
from .model import GraphModel
from .traversal import PersonsArg, RelationshipsArg, descendant_subgraph

FAN_SIZE = 800
FAN_GENERATIONS = 5
FAN_CENTER_RADIUS = 50
_FAN_MARGIN = 20
_LABEL_MIN_SPAN = 15

GENERATION_COLORS = (
    "#14b8a6",
    "#06b6d4",
    "#3b82f6",
    "#6366f1",
    "#8b5cf6",
    "#64748b",
)

DESCENDANT_NODE_SEPARATION = 100
DESCENDANT_RANK_SEPARATION = 150


def generation_color(generation: int) -> str:
    return GENERATION_COLORS[min(generation, len(GENERATION_COLORS) - 1)]


def _polar(cx: float, cy: float, radius: float, angle: float) -> tuple[float, float]:
    # 0 degrees points up; angles grow clockwise.
    rad = math.radians(angle - 90)
    return cx + radius * math.cos(rad), cy + radius * math.sin(rad)


def arc_path(
    cx: float,
    cy: float,
    inner_radius: float,
    outer_radius: float,
    start_angle: float,
    end_angle: float,
) -> str:
    """SVG path for the ring segment between two radii and two angles."""

    x1, y1 = _polar(cx, cy, inner_radius, start_angle)
    x2, y2 = _polar(cx, cy, outer_radius, start_angle)
    x3, y3 = _polar(cx, cy, outer_radius, end_angle)
    x4, y4 = _polar(cx, cy, inner_radius, end_angle)
    large_arc = 1 if end_angle - start_angle > 180 else 0
    return (
        f"M {x1:.2f} {y1:.2f} "
        f"L {x2:.2f} {y2:.2f} "
        f"A {outer_radius:.2f} {outer_radius:.2f} 0 {large_arc} 1 {x3:.2f} {y3:.2f} "
        f"L {x4:.2f} {y4:.2f} "
        f"A {inner_radius:.2f} {inner_radius:.2f} 0 {large_arc} 0 {x1:.2f} {y1:.2f} Z"
    )


def fan_segments(
    tree: Optional[dict[str, Any]],
    *,
    size: float = FAN_SIZE,
    generations: int = FAN_GENERATIONS,
    center_radius: float = FAN_CENTER_RADIUS,
) -> list[dict[str, Any]]:
    """Flatten an ancestor tree into fan chart segments.

    The root is a centre circle; every further generation is a ring and each
    person splits their angle range evenly between their parents. Ancestors
    reached through several paths get one segment per path.
    """

    if not tree:
        return []

    cx = cy = size / 2
    max_radius = size / 2 - _FAN_MARGIN
    ring = (max_radius - center_radius) / max(1, generations)

    segments: list[dict[str, Any]] = []

    def _walk(node: dict[str, Any], start: float, end: float, generation: int) -> None:
        if generation > generations:
            return

        if generation == 0:
            segments.append(
                {
                    "person_id": node.get("id"),
                    "label": node.get("first_name") or "",
                    "generation": 0,
                    "is_center": True,
                    "cx": cx,
                    "cy": cy,
                    "r": center_radius,
                    "color": generation_color(0),
                }
            )
        else:
            inner = center_radius + (generation - 1) * ring
            outer = center_radius + generation * ring
            mid = (start + end) / 2
            lx, ly = _polar(cx, cy, (inner + outer) / 2, mid)
            segments.append(
                {
                    "person_id": node.get("id"),
                    "label": node.get("first_name") or "",
                    "generation": generation,
                    "is_center": False,
                    "start_angle": start,
                    "end_angle": end,
                    "mid_angle": mid,
                    "inner_radius": inner,
                    "outer_radius": outer,
                    "path": arc_path(cx, cy, inner, outer, start, end),
                    "label_x": lx,
                    "label_y": ly,
                    "show_label": end - start > _LABEL_MIN_SPAN,
                    "color": generation_color(generation),
                }
            )

        parents = node.get("parents") or []
        if not parents:
            return
        span = (end - start) / len(parents)
        for i, parent in enumerate(parents):
            _walk(parent, start + i * span, start + (i + 1) * span, generation + 1)

    _walk(tree, 0.0, 360.0, 0)
    return segments


def parent_for_refocus(person_id: str, relationships: RelationshipsArg) -> Optional[str]:
    """First recorded parent of ``person_id``, for the fan chart's "go to parent"."""
    parents = GraphModel((), relationships).parents_of(person_id)
    return parents[0] if parents else None


def descendant_chart(
    root_id: str,
    persons: PersonsArg,
    relationships: RelationshipsArg,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    sub = descendant_subgraph(root_id, persons, relationships)
    nodes, edges = build_graph_elements(sub.persons, sub.relationships, highlighted=[root_id])
    placed = layout_elements(
        nodes,
        edges,
        direction=Direction.TB,
        node_separation=DESCENDANT_NODE_SEPARATION,
        rank_separation=DESCENDANT_RANK_SEPARATION,
    )
    return placed, edges
