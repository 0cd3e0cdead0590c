from __future__ import annotations

from famtree.graph import build_graph_elements
from famtree.layout import NODE_HEIGHT, NODE_SEPARATION, NODE_WIDTH, RANK_SEPARATION, Direction, layout_elements

from conftest import make_person, make_rel


def _positions(placed) -> dict[str, tuple[float, float]]:
    return {n["id"]: (n["position"]["x"], n["position"]["y"]) for n in placed}


def _chain():
    persons = [make_person("a", "A"), make_person("b", "B"), make_person("c", "C")]
    rels = [make_rel("r1", "a", "b"), make_rel("r2", "b", "c")]
    return build_graph_elements(persons, rels)


def test_empty_input_returns_empty_list() -> None:
    assert layout_elements([], []) == []


def test_chain_top_to_bottom() -> None:
    nodes, edges = _chain()
    pos = _positions(layout_elements(nodes, edges, direction="TB"))
    assert pos["a"][1] < pos["b"][1] < pos["c"][1]
    assert pos["a"][0] == pos["b"][0] == pos["c"][0]
    assert pos["b"][1] - pos["a"][1] == NODE_HEIGHT + RANK_SEPARATION


def test_chain_left_to_right() -> None:
    nodes, edges = _chain()
    pos = _positions(layout_elements(nodes, edges, direction=Direction.LR))
    assert pos["a"][0] < pos["b"][0] < pos["c"][0]
    assert pos["a"][1] == pos["b"][1] == pos["c"][1]
    assert pos["b"][0] - pos["a"][0] == NODE_WIDTH + RANK_SEPARATION


def test_handles_follow_direction() -> None:
    nodes, edges = _chain()
    tb = layout_elements(nodes, edges, direction="TB")[0]
    lr = layout_elements(nodes, edges, direction="LR")[0]
    assert (tb["target_position"], tb["source_position"]) == ("top", "bottom")
    assert (lr["target_position"], lr["source_position"]) == ("left", "right")


def test_input_nodes_are_not_mutated() -> None:
    nodes, edges = _chain()
    layout_elements(nodes, edges)
    assert all(n["position"] == {"x": 0, "y": 0} for n in nodes)
    assert all("target_position" not in n for n in nodes)


def test_layout_is_deterministic(family_persons, family_relationships) -> None:
    nodes, edges = build_graph_elements(family_persons, family_relationships)
    assert layout_elements(nodes, edges) == layout_elements(nodes, edges)


def test_parents_above_children_and_spouses_share_a_rank(family_persons, family_relationships) -> None:
    nodes, edges = build_graph_elements(family_persons, family_relationships)
    pos = _positions(layout_elements(nodes, edges))
    assert pos["a"][1] == pos["b"][1]
    # d has no parents in the tree but sits beside her partner c.
    assert pos["c"][1] == pos["d"][1]
    assert pos["a"][1] < pos["c"][1] < pos["e"][1]
    assert pos["f"][1] == pos["c"][1]


def test_nodes_on_a_rank_do_not_overlap(family_persons, family_relationships) -> None:
    nodes, edges = build_graph_elements(family_persons, family_relationships)
    by_rank: dict[float, list[float]] = {}
    for x, y in _positions(layout_elements(nodes, edges)).values():
        by_rank.setdefault(y, []).append(x)
    for xs in by_rank.values():
        xs.sort()
        for left, right in zip(xs, xs[1:]):
            assert right - left >= NODE_WIDTH + NODE_SEPARATION


def test_partners_are_adjacent(family_persons, family_relationships) -> None:
    nodes, edges = build_graph_elements(family_persons, family_relationships)
    placed = layout_elements(nodes, edges)
    pos = _positions(placed)
    rank_c = sorted((x, nid) for nid, (x, y) in pos.items() if y == pos["c"][1])
    order = [nid for _, nid in rank_c]
    assert abs(order.index("c") - order.index("d")) == 1


def test_dangling_edges_are_ignored() -> None:
    nodes = [{"id": "p", "position": {"x": 0, "y": 0}}]
    edges = [{"id": "e1", "source": "p", "target": "ghost", "relationship_type": "parent_child"}]
    placed = layout_elements(nodes, edges)
    assert len(placed) == 1
    assert placed[0]["position"] == {"x": 0, "y": 0}


def test_cycles_still_get_positions() -> None:
    nodes = [{"id": "x"}, {"id": "y"}]
    edges = [
        {"id": "e1", "source": "x", "target": "y", "relationship_type": "parent_child"},
        {"id": "e2", "source": "y", "target": "x", "relationship_type": "parent_child"},
    ]
    pos = _positions(layout_elements(nodes, edges))
    assert set(pos) == {"x", "y"}
    assert pos["x"][1] != pos["y"][1]


def test_spacing_options_are_respected() -> None:
    nodes, edges = _chain()
    pos = _positions(layout_elements(nodes, edges, node_height=10, rank_separation=5))
    assert pos["b"][1] - pos["a"][1] == 15


def _fork():
    persons = [make_person("a", "A"), make_person("b", "B"), make_person("c", "C")]
    rels = [make_rel("r1", "a", "b"), make_rel("r2", "a", "c")]
    return build_graph_elements(persons, rels)


def test_siblings_share_a_rank_in_both_directions() -> None:
    nodes, edges = _fork()

    top_down = _positions(layout_elements(nodes, edges, direction="TB"))
    assert top_down["b"][1] == top_down["c"][1]
    assert abs(top_down["b"][0] - top_down["c"][0]) >= NODE_SEPARATION
    assert top_down["a"][1] < top_down["b"][1]

    sideways = _positions(layout_elements(nodes, edges, direction="LR"))
    assert sideways["b"][0] == sideways["c"][0]
    assert sideways["b"][1] != sideways["c"][1]
    assert sideways["a"][0] < sideways["b"][0]


def test_nodes_on_a_rank_do_not_overlap_left_to_right(family_persons, family_relationships) -> None:
    nodes, edges = build_graph_elements(family_persons, family_relationships)
    by_rank: dict[float, list[float]] = {}
    for x, y in _positions(layout_elements(nodes, edges, direction=Direction.LR)).values():
        by_rank.setdefault(x, []).append(y)
    assert len(by_rank) == 3
    for ys in by_rank.values():
        ys.sort()
        for top, bottom in zip(ys, ys[1:]):
            assert bottom - top >= NODE_HEIGHT + NODE_SEPARATION
