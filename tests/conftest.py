from __future__ import annotations

from typing import Any

import pytest


def make_person(pid: str, first: str, last: str = "Doe", **extra: Any) -> dict[str, Any]:
    out: dict[str, Any] = {"id": pid, "tree_id": "t1", "first_name": first, "last_name": last, "gender": "Unknown"}
    out.update(extra)
    return out


def make_rel(rid: str, p1: str, p2: str, rel_type: str = "parent_child") -> dict[str, Any]:
    return {"id": rid, "tree_id": "t1", "person_1_id": p1, "person_2_id": p2, "type": rel_type}


@pytest.fixture()
def family_persons() -> list[dict[str, Any]]:
    # a + b are partners with children c and f (f is a's only); c + d have e.
    return [
        make_person("a", "Albert", dob="1920-03-01", dod="1990-05-02", gender="Male"),
        make_person("b", "Beatrix", dob="1922-07-14", gender="Female"),
        make_person("c", "Carl", dob="1950-01-01"),
        make_person("d", "Dora", last="Smith", dob="1952-02-02"),
        make_person("e", "Emma", dob="1980-12-24"),
        make_person("f", "Frank"),
    ]


@pytest.fixture()
def family_relationships() -> list[dict[str, Any]]:
    return [
        make_rel("r1", "a", "b", "spouse"),
        make_rel("r2", "a", "c"),
        make_rel("r3", "b", "c"),
        make_rel("r4", "c", "d", "spouse"),
        make_rel("r5", "c", "e"),
        make_rel("r6", "d", "e"),
        make_rel("r7", "a", "f"),
    ]
