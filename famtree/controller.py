"""Interactive controller for one tree view.

Owns the fetch -> model -> focus filter -> layout cycle, the optimistic edit
flow and the undo/redo log. Rendering is somebody else's job: the controller
exposes ``nodes`` / ``edges`` and reports everything else through a
``listener(event, payload)`` callback.

Events: ``state``, ``elements``, ``fit_view``, ``select``, ``center_on``,
``notice``, ``view_lock``, ``interaction_start``, ``interaction_end``.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import requests

from .client import ApiError, TreeApiClient
from .graph import build_graph_elements
from .history import History, HistoryAction, HistoryEntry
from .layout import NODE_HEIGHT, NODE_SEPARATION, NODE_WIDTH, RANK_SEPARATION, Direction, layout_elements
from .model import (
    PARENT_CHILD_TYPES,
    SPOUSE_TYPE,
    GraphModel,
    Person,
    Relationship,
    RelationshipType,
    as_persons,
    as_relationships,
)
from .traversal import lineage_focus

log = logging.getLogger(__name__)

Listener = Callable[[str, dict[str, Any]], None]
Confirm = Callable[[str], bool]

EDIT_ROLES = frozenset({"owner", "editor"})

_CLIENT_ERRORS = (ApiError, requests.RequestException)
_PAYLOAD_ERRORS = (AttributeError, KeyError, TypeError, ValueError)

_PERSON_CREATE_FIELDS = (
    "first_name",
    "last_name",
    "gender",
    "dob",
    "dod",
    "pob",
    "bio",
    "occupation",
    "profile_photo_url",
)

_KEY_STEPS = {
    "ArrowUp": "parents_of",
    "ArrowDown": "children_of",
    "ArrowLeft": "spouses_of",
    "ArrowRight": "spouses_of",
}

_PENDING_PREFIX = "pending-"


class ViewState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class RelativeKind(str, Enum):
    PARENT = "parent"
    CHILD = "child"
    SPOUSE = "spouse"


@dataclass
class Notice:
    level: str
    message: str


def _person_create_payload(tree_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    payload = {k: fields.get(k) for k in _PERSON_CREATE_FIELDS if k in fields}
    payload["tree_id"] = tree_id
    return payload


def _relationship_slots(kind: RelativeKind, existing_id: str, new_id: str) -> tuple[str, str]:
    # Parent actions put the new person in person_1 (the parent slot).
    if kind is RelativeKind.PARENT:
        return new_id, existing_id
    return existing_id, new_id


def _default_relationship_type(kind: RelativeKind, requested: Optional[str]) -> str:
    if kind is RelativeKind.SPOUSE:
        if requested not in (None, SPOUSE_TYPE):
            raise ValueError(f"spouse relative cannot use relationship type {requested!r}")
        return SPOUSE_TYPE
    if requested is None:
        return RelationshipType.PARENT_CHILD.value
    if requested not in PARENT_CHILD_TYPES:
        raise ValueError(f"{kind.value} relative cannot use relationship type {requested!r}")
    return requested


class NavigationController:
    def __init__(
        self,
        client: TreeApiClient,
        tree_id: str,
        *,
        direction: Direction | str = Direction.TB,
        confirm: Optional[Confirm] = None,
        listener: Optional[Listener] = None,
        node_width: float = NODE_WIDTH,
        node_height: float = NODE_HEIGHT,
        node_separation: float = NODE_SEPARATION,
        rank_separation: float = RANK_SEPARATION,
    ) -> None:
        self.client = client
        self.tree_id = tree_id
        self.direction = Direction(direction)
        # Without a confirm callback deletions are refused.
        self._confirm: Confirm = confirm or (lambda _message: False)
        self._listener = listener
        self._node_width = node_width
        self._node_height = node_height
        self._node_separation = node_separation
        self._rank_separation = rank_separation

        self.state = ViewState.LOADING
        self.error: Optional[str] = None
        self.error_status: Optional[int] = None
        self.tree_name = ""
        self.role: Optional[str] = None

        self.persons: list[Person] = []
        self.relationships: list[Relationship] = []
        self.model = GraphModel()

        # Unfiltered elements of the last load; kept to restore after focus mode.
        self.original_nodes: list[dict[str, Any]] = []
        self.original_edges: list[dict[str, Any]] = []
        # What is on screen now (full tree or focus subgraph), with positions.
        self.nodes: list[dict[str, Any]] = []
        self.edges: list[dict[str, Any]] = []
        self._display_model = GraphModel()

        self.selected_id: Optional[str] = None
        self.focus_mode = False
        self.focus_root_id: Optional[str] = None
        self.view_locked = False
        self.interacting = False
        self._dragging_id: Optional[str] = None

        self.history = History()
        self.notices: list[Notice] = []
        self._pending_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _emit(self, event: str, **payload: Any) -> None:
        if self._listener is not None:
            self._listener(event, payload)

    def _notify(self, level: str, message: str) -> None:
        notice = Notice(level=level, message=message)
        self.notices.append(notice)
        self._emit("notice", level=level, message=message)

    def _set_state(self, state: ViewState) -> None:
        self.state = state
        self._emit("state", state=state.value)

    # ------------------------------------------------------------------
    # Loading and display
    # ------------------------------------------------------------------

    @property
    def can_edit(self) -> bool:
        return self.role in EDIT_ROLES

    @property
    def zen_mode(self) -> bool:
        return self.interacting

    @property
    def displayed_ids(self) -> list[str]:
        return [n["id"] for n in self.nodes]

    def load(self) -> bool:
        """Fetch the tree and rebuild model, layout and displayed set."""

        self._set_state(ViewState.LOADING)
        try:
            payload = self.client.fetch_tree(self.tree_id)
            persons = as_persons(payload.get("persons") or [])
            relationships = as_relationships(payload.get("relationships") or [])
        except ApiError as exc:
            log.warning("loading tree %s failed: %s", self.tree_id, exc)
            self.error_status = exc.status_code
            if exc.is_forbidden:
                self.error = "You do not have permission to view this tree."
            else:
                self.error = "Failed to load the family tree."
            self._set_state(ViewState.ERROR)
            return False
        except (requests.RequestException, *_PAYLOAD_ERRORS) as exc:
            log.warning("loading tree %s failed: %s", self.tree_id, exc)
            self.error_status = None
            self.error = "Failed to load the family tree."
            self._set_state(ViewState.ERROR)
            return False

        self.error = None
        self.error_status = None
        self.tree_name = str(payload.get("name") or "")
        self.role = payload.get("role")
        self.persons = persons
        self.relationships = relationships
        self.model = GraphModel(persons, relationships)

        self.original_nodes, self.original_edges = build_graph_elements(persons, relationships)

        if self.selected_id is not None and not self.model.has_person(self.selected_id):
            self.selected_id = None

        if self.focus_mode and self.focus_root_id and self.model.has_person(self.focus_root_id):
            self._show_focus(self.focus_root_id)
        else:
            self.focus_mode = False
            self.focus_root_id = None
            self._show(self.original_nodes, self.original_edges)

        self._set_state(ViewState.READY)
        self._emit("fit_view")
        return True

    def retry(self) -> bool:
        return self.load()

    def _layout(self, nodes: list[dict[str, Any]], edges: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return layout_elements(
            nodes,
            edges,
            direction=self.direction,
            node_width=self._node_width,
            node_height=self._node_height,
            node_separation=self._node_separation,
            rank_separation=self._rank_separation,
        )

    def _show(self, nodes: list[dict[str, Any]], edges: list[dict[str, Any]]) -> None:
        self.nodes = self._layout(nodes, edges)
        self.edges = list(edges)
        shown = set(self.displayed_ids)
        self._display_model = GraphModel(
            [p for p in self.persons if p.id in shown],
            [r for r in self.relationships if r.person_1_id in shown and r.person_2_id in shown],
        )
        self._emit("elements", nodes=len(self.nodes), edges=len(self.edges))

    def _show_focus(self, person_id: str) -> None:
        sub = lineage_focus(person_id, self.persons, self.relationships)
        nodes, edges = build_graph_elements(sub.persons, sub.relationships, highlighted=[person_id])
        self._show(nodes, edges)

    def set_direction(self, direction: Direction | str) -> None:
        self.direction = Direction(direction)
        if self.state is ViewState.READY:
            self._show(self.nodes, self.edges)
            self._emit("fit_view")

    def toggle_direction(self) -> Direction:
        self.set_direction(Direction.LR if self.direction is Direction.TB else Direction.TB)
        return self.direction

    # ------------------------------------------------------------------
    # Selection and keyboard navigation
    # ------------------------------------------------------------------

    def _node(self, person_id: str) -> Optional[dict[str, Any]]:
        for n in self.nodes:
            if n["id"] == person_id:
                return n
        return None

    def select(self, person_id: str) -> bool:
        node = self._node(person_id)
        if node is None:
            return False
        self.selected_id = person_id
        pos = node.get("position") or {"x": 0, "y": 0}
        self._emit("select", person_id=person_id)
        self._emit(
            "center_on",
            person_id=person_id,
            x=pos["x"] + self._node_width / 2,
            y=pos["y"] + self._node_height / 2,
        )
        return True

    def clear_selection(self) -> None:
        self.selected_id = None

    def handle_key(self, key: str, *, text_input_focused: bool = False) -> bool:
        """Move the selection along a graph edge; returns True if it moved."""

        if text_input_focused or self.selected_id is None or self.state is not ViewState.READY:
            return False
        step_name = _KEY_STEPS.get(key)
        if step_name is None:
            return False

        shown = set(self.displayed_ids)
        step = getattr(self._display_model, step_name)
        for candidate in step(self.selected_id):
            if candidate in shown:
                return self.select(candidate)
        return False

    # ------------------------------------------------------------------
    # Focus mode and view lock
    # ------------------------------------------------------------------

    def enter_focus_mode(self, person_id: Optional[str] = None) -> bool:
        target = person_id or self.selected_id
        if self.state is not ViewState.READY or target is None or not self.model.has_person(target):
            self._notify("info", "Select a person to focus on their lineage.")
            return False
        self.focus_mode = True
        self.focus_root_id = target
        self._show_focus(target)
        self._emit("fit_view")
        return True

    def exit_focus_mode(self) -> None:
        if not self.focus_mode:
            return
        self.focus_mode = False
        self.focus_root_id = None
        self._show(self.original_nodes, self.original_edges)
        self._emit("fit_view")

    def toggle_focus_mode(self) -> bool:
        if self.focus_mode:
            self.exit_focus_mode()
            return False
        return self.enter_focus_mode()

    def lock_view(self) -> None:
        self.view_locked = True
        self._emit("view_lock", locked=True)

    def unlock_view(self) -> None:
        self.view_locked = False
        self._emit("view_lock", locked=False)

    def toggle_view_lock(self) -> bool:
        if self.view_locked:
            self.unlock_view()
        else:
            self.lock_view()
        return self.view_locked

    # ------------------------------------------------------------------
    # Pane interaction (pan / drag)
    # ------------------------------------------------------------------

    def _begin_interaction(self, kind: str) -> None:
        self.interacting = True
        self._emit("interaction_start", kind=kind)

    def _end_interaction(self, kind: str) -> None:
        self.interacting = False
        self._emit("interaction_end", kind=kind)

    def move_start(self) -> bool:
        if self.view_locked:
            return False
        self._begin_interaction("pan")
        return True

    def move_end(self) -> None:
        if self.interacting and self._dragging_id is None:
            self._end_interaction("pan")

    def node_drag_start(self, person_id: str) -> bool:
        if self.view_locked or self._node(person_id) is None:
            return False
        self._dragging_id = person_id
        self._begin_interaction("drag")
        return True

    def node_drag(self, person_id: str, x: float, y: float) -> bool:
        if self.view_locked or self._dragging_id != person_id:
            return False
        node = self._node(person_id)
        if node is None:
            return False
        node["position"] = {"x": x, "y": y}
        return True

    def node_drag_stop(self, person_id: str) -> None:
        if self._dragging_id != person_id:
            return
        self._dragging_id = None
        self._end_interaction("drag")

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _require_edit(self) -> bool:
        if self.state is not ViewState.READY:
            self._notify("error", "The tree is not loaded.")
            return False
        if not self.can_edit:
            self._notify("error", "You have read-only access to this tree.")
            return False
        return True

    def _snapshot(self) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        return list(self.nodes), list(self.edges)

    def _rollback(self, snapshot: tuple[list[dict[str, Any]], list[dict[str, Any]]]) -> None:
        self.nodes, self.edges = snapshot
        self._emit("elements", nodes=len(self.nodes), edges=len(self.edges))

    def _next_pending_id(self) -> str:
        return f"{_PENDING_PREFIX}{next(self._pending_ids)}"

    def _apply_pending(
        self,
        pending_id: str,
        fields: dict[str, Any],
        *,
        link: Optional[tuple[str, str, str]] = None,
    ) -> None:
        """Show a placeholder node (and edge) before the server confirms it."""

        label = f"{fields.get('first_name') or ''} {fields.get('last_name') or ''}".strip()
        node = {
            "id": pending_id,
            "person_id": None,
            "type": "person",
            "data": {"label": label, "subline": "", "highlighted": False, "pending": True},
            "position": {"x": 0, "y": 0},
        }
        nodes = self.nodes + [node]
        edges = list(self.edges)
        if link is not None:
            source, target, rel_type = link
            edges.append(
                {
                    "id": f"{pending_id}-edge",
                    "source": source,
                    "target": target,
                    "relationship_type": rel_type,
                }
            )
        self.nodes = self._layout(nodes, edges)
        self.edges = edges
        self._emit("elements", nodes=len(self.nodes), edges=len(self.edges))

    def _discard_orphan(self, person_id: str) -> None:
        try:
            self.client.delete_person(person_id)
        except _CLIENT_ERRORS as exc:
            log.warning("could not remove person %s after a failed edit: %s", person_id, exc)

    def _create_linked_person(
        self,
        person_fields: dict[str, Any],
        relationship: Optional[dict[str, Any]],
        replace_id: Optional[str],
    ) -> tuple[dict[str, Any], Optional[dict[str, Any]]]:
        """Create a person and, optionally, the relationship tying it in.

        ``replace_id`` is the placeholder in ``relationship`` that stands for
        the person being created. If the relationship fails the person is
        deleted again and the error re-raised. A reply without a person id
        is reported as :class:`ApiError`.
        """

        person = self.client.create_person(_person_create_payload(self.tree_id, person_fields))
        if not isinstance(person, dict) or not person.get("id"):
            raise ApiError(502, "The server did not return the created person.")
        if relationship is None:
            return person, None

        new_id = str(person["id"])
        rel_payload = {
            "tree_id": self.tree_id,
            "person_1_id": new_id if relationship["person_1_id"] == replace_id else relationship["person_1_id"],
            "person_2_id": new_id if relationship["person_2_id"] == replace_id else relationship["person_2_id"],
            "type": relationship["type"],
        }
        try:
            created_rel = self.client.create_relationship(rel_payload)
        except _CLIENT_ERRORS:
            self._discard_orphan(new_id)
            raise
        if not isinstance(created_rel, dict):
            # Keep what we asked for so redo can rebuild the link.
            created_rel = rel_payload
        return person, created_rel

    def add_person(self, fields: dict[str, Any]) -> Optional[str]:
        """Add an unconnected person (a new root)."""

        if not self._require_edit():
            return None

        snapshot = self._snapshot()
        self._apply_pending(self._next_pending_id(), fields)
        try:
            person, _ = self._create_linked_person(fields, None, None)
        except _CLIENT_ERRORS as exc:
            log.warning("adding person to tree %s failed: %s", self.tree_id, exc)
            self._rollback(snapshot)
            self._notify("error", "Could not add the person. Please try again.")
            return None

        return self._after_add(person, None)

    def add_relative(
        self,
        person_id: str,
        kind: RelativeKind | str,
        fields: dict[str, Any],
        relationship_type: Optional[str] = None,
    ) -> Optional[str]:
        """Create a parent, child or spouse of ``person_id``; returns the new person id."""

        try:
            kind = RelativeKind(kind)
            rel_type = _default_relationship_type(kind, relationship_type)
        except ValueError as exc:
            log.warning("rejected relative for %s: %s", person_id, exc)
            self._notify("error", "That relationship type does not fit this kind of relative.")
            return None

        if not self._require_edit():
            return None
        if not self.model.has_person(person_id):
            self._notify("error", "That person is no longer in the tree.")
            return None

        snapshot = self._snapshot()
        pending_id = self._next_pending_id()
        p1, p2 = _relationship_slots(kind, person_id, pending_id)
        self._apply_pending(pending_id, fields, link=(p1, p2, rel_type))
        try:
            person, relationship = self._create_linked_person(
                fields,
                {"person_1_id": p1, "person_2_id": p2, "type": rel_type},
                pending_id,
            )
        except _CLIENT_ERRORS as exc:
            log.warning("adding %s of %s failed: %s", kind.value, person_id, exc)
            self._rollback(snapshot)
            self._notify("error", f"Could not add the {kind.value}. Please try again.")
            return None

        return self._after_add(person, relationship)

    def _after_add(self, person: dict[str, Any], relationship: Optional[dict[str, Any]]) -> str:
        new_id = str(person["id"])
        self.history.push(
            HistoryEntry(
                HistoryAction.ADD_PERSON,
                {"person_id": new_id, "person": dict(person), "relationship": relationship},
            )
        )
        self.load()
        self._select_created(new_id)
        return new_id

    def _select_created(self, person_id: str) -> None:
        # A new person may fall outside the focused lineage; show the full tree then.
        if self.focus_mode and self._node(person_id) is None:
            self.exit_focus_mode()
        self.select(person_id)

    def delete_person(self, person_id: str) -> bool:
        if not self._require_edit():
            return False
        person = self.model.person(person_id)
        if person is None:
            self._notify("error", "That person is no longer in the tree.")
            return False

        name = person.display_name or "this person"
        if not self._confirm(f'Delete "{name}"? Their relationships will be removed too.'):
            return False

        captured = person.to_dict()
        incident = [r.to_dict() for r in self.model.incident_relationships(person_id)]

        snapshot = self._snapshot()
        self.nodes = [n for n in self.nodes if n["id"] != person_id]
        self.edges = [e for e in self.edges if person_id not in (e["source"], e["target"])]
        self._emit("elements", nodes=len(self.nodes), edges=len(self.edges))

        try:
            self.client.delete_person(person_id)
        except _CLIENT_ERRORS as exc:
            log.warning("deleting person %s failed: %s", person_id, exc)
            self._rollback(snapshot)
            self._notify("error", "Could not delete the person. Please try again.")
            return False

        self.history.push(
            HistoryEntry(
                HistoryAction.DELETE_PERSON,
                {
                    "person_id": person_id,
                    "person": captured,
                    "relationship": incident[0] if incident else None,
                    "relationships": incident,
                },
            )
        )
        if self.selected_id == person_id:
            self.selected_id = None
        self.load()
        return True

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        entry = self.history.pop_undo()
        if entry is None:
            return False

        if entry.type is HistoryAction.DELETE_PERSON:
            self._notify("info", "Undoing a deletion is not supported yet.")
            return False

        person_id = entry.person_id
        try:
            self.client.delete_person(person_id)
        except _CLIENT_ERRORS as exc:
            log.warning("undo of adding %s failed: %s", person_id, exc)
            self.history.push_undo(entry)
            self._notify("error", "Undo failed. Please try again.")
            return False

        self.history.push_redo(entry)
        if self.selected_id == person_id:
            self.selected_id = None
        self.load()
        return True

    def redo(self) -> bool:
        entry = self.history.pop_redo()
        if entry is None:
            return False

        old_id = entry.person_id
        try:
            person, relationship = self._create_linked_person(
                entry.data.get("person") or {},
                entry.data.get("relationship"),
                old_id,
            )
        except _CLIENT_ERRORS as exc:
            log.warning("redo of adding %s failed: %s", old_id, exc)
            self.history.push_redo(entry)
            self._notify("error", "Redo failed. Please try again.")
            return False

        new_id = str(person["id"])
        self.history.push_undo(
            HistoryEntry(
                HistoryAction.ADD_PERSON,
                {"person_id": new_id, "person": dict(person), "relationship": relationship},
            )
        )
        self.load()
        self._select_created(new_id)
        return True

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo
