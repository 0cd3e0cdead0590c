"""Person / Relationship records and the typed adjacency views derived from them.

The relationship list is the only structural input. ``person_1_id`` is the
parent for every parent/child variant; for ``spouse`` the slot order carries
no meaning.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"
    UNKNOWN = "Unknown"


class RelationshipType(str, Enum):
    PARENT_CHILD = "parent_child"
    ADOPTIVE_PARENT_CHILD = "adoptive_parent_child"
    STEP_PARENT_CHILD = "step_parent_child"
    SPOUSE = "spouse"


PARENT_CHILD_TYPES = frozenset(
    {
        RelationshipType.PARENT_CHILD.value,
        RelationshipType.ADOPTIVE_PARENT_CHILD.value,
        RelationshipType.STEP_PARENT_CHILD.value,
    }
)
SPOUSE_TYPE = RelationshipType.SPOUSE.value


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _gender(value: Any) -> Gender:
    try:
        return Gender(str(value))
    except ValueError:
        return Gender.UNKNOWN


@dataclass(frozen=True)
class Person:
    id: str
    tree_id: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    gender: Gender = Gender.UNKNOWN
    dob: Optional[str] = None
    dod: Optional[str] = None
    pob: Optional[str] = None
    bio: Optional[str] = None
    occupation: Optional[str] = None
    profile_photo_url: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Person":
        return cls(
            id=str(d["id"]),
            tree_id=_opt_str(d.get("tree_id")),
            first_name=str(d.get("first_name") or ""),
            last_name=str(d.get("last_name") or ""),
            gender=_gender(d.get("gender")),
            dob=_opt_str(d.get("dob")),
            dod=_opt_str(d.get("dod")),
            pob=_opt_str(d.get("pob")),
            bio=_opt_str(d.get("bio")),
            occupation=_opt_str(d.get("occupation")),
            profile_photo_url=_opt_str(d.get("profile_photo_url")),
        )

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["gender"] = self.gender.value
        return out

    @property
    def is_deceased(self) -> bool:
        return self.dod is not None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Relationship:
    id: str
    person_1_id: str
    person_2_id: str
    type: str
    tree_id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Relationship":
        return cls(
            id=str(d["id"]),
            person_1_id=str(d["person_1_id"]),
            person_2_id=str(d["person_2_id"]),
            type=str(d.get("type") or ""),
            tree_id=_opt_str(d.get("tree_id")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def is_parent_child(self) -> bool:
        return self.type in PARENT_CHILD_TYPES

    @property
    def is_spouse(self) -> bool:
        return self.type == SPOUSE_TYPE

    def involves(self, person_id: str) -> bool:
        return person_id in (self.person_1_id, self.person_2_id)


def as_persons(items: Iterable[Person | Mapping[str, Any]]) -> list[Person]:
    return [p if isinstance(p, Person) else Person.from_dict(p) for p in items or ()]


def as_relationships(items: Iterable[Relationship | Mapping[str, Any]]) -> list[Relationship]:
    return [r if isinstance(r, Relationship) else Relationship.from_dict(r) for r in items or ()]


def _append_unique(index: dict[str, list[str]], key: str, value: str) -> None:
    bucket = index.setdefault(key, [])
    if value not in bucket:
        bucket.append(value)


class GraphModel:
    """Read-only adjacency over one tree's persons and relationships.

    Every lookup returns a tuple of person ids in first-seen relationship
    order, without duplicates. Ids that have no person record are still
    returned; callers that need records filter with :meth:`has_person`.
    """

    def __init__(
        self,
        persons: Iterable[Person | Mapping[str, Any]] = (),
        relationships: Iterable[Relationship | Mapping[str, Any]] = (),
    ) -> None:
        self.persons: list[Person] = as_persons(persons)
        self.relationships: list[Relationship] = as_relationships(relationships)
        self._by_id: dict[str, Person] = {p.id: p for p in self.persons}

        self._parents: dict[str, list[str]] = {}
        self._children: dict[str, list[str]] = {}
        self._spouses: dict[str, list[str]] = {}

        for r in self.relationships:
            a, b = r.person_1_id, r.person_2_id
            if a == b:
                continue
            if r.is_parent_child:
                _append_unique(self._children, a, b)
                _append_unique(self._parents, b, a)
            elif r.is_spouse:
                _append_unique(self._spouses, a, b)
                _append_unique(self._spouses, b, a)

    def has_person(self, person_id: str) -> bool:
        return person_id in self._by_id

    def person(self, person_id: str) -> Optional[Person]:
        return self._by_id.get(person_id)

    def parents_of(self, person_id: str) -> tuple[str, ...]:
        return tuple(self._parents.get(person_id, ()))

    def children_of(self, person_id: str) -> tuple[str, ...]:
        return tuple(self._children.get(person_id, ()))

    def spouses_of(self, person_id: str) -> tuple[str, ...]:
        return tuple(self._spouses.get(person_id, ()))

    def siblings_of(self, person_id: str) -> tuple[str, ...]:
        """Everyone sharing at least one parent with ``person_id`` (half siblings included)."""
        out: list[str] = []
        for parent_id in self.parents_of(person_id):
            for child_id in self.children_of(parent_id):
                if child_id != person_id and child_id not in out:
                    out.append(child_id)
        return tuple(out)

    def full_siblings_of(self, person_id: str) -> tuple[str, ...]:
        parents = set(self.parents_of(person_id))
        if not parents:
            return ()
        return tuple(s for s in self.siblings_of(person_id) if set(self.parents_of(s)) == parents)

    def incident_relationships(self, person_id: str) -> list[Relationship]:
        return [r for r in self.relationships if r.involves(person_id)]
