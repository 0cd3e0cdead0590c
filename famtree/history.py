"""In-memory undo/redo log for tree edits.

Each entry stores enough to issue the inverse API call; nothing is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class HistoryAction(str, Enum):
    ADD_PERSON = "ADD_PERSON"
    DELETE_PERSON = "DELETE_PERSON"


@dataclass
class HistoryEntry:
    type: HistoryAction
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def person_id(self) -> Optional[str]:
        return self.data.get("person_id")


class History:
    def __init__(self) -> None:
        self._past: list[HistoryEntry] = []
        self._future: list[HistoryEntry] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def push(self, entry: HistoryEntry) -> None:
        """Record a new confirmed action; any redo branch is discarded."""
        self._past.append(entry)
        self._future.clear()

    def pop_undo(self) -> Optional[HistoryEntry]:
        return self._past.pop() if self._past else None

    def push_undo(self, entry: HistoryEntry) -> None:
        # Used by redo: unlike push(), keeps the rest of the redo stack.
        self._past.append(entry)

    def pop_redo(self) -> Optional[HistoryEntry]:
        return self._future.pop() if self._future else None

    def push_redo(self, entry: HistoryEntry) -> None:
        self._future.append(entry)

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def __len__(self) -> int:
        return len(self._past)
