from __future__ import annotations

from famtree.history import History, HistoryAction, HistoryEntry


def _add(pid: str) -> HistoryEntry:
    return HistoryEntry(HistoryAction.ADD_PERSON, {"person_id": pid})


def test_new_action_clears_redo() -> None:
    h = History()
    h.push(_add("1"))
    h.push_redo(h.pop_undo())
    assert h.can_redo
    h.push(_add("2"))
    assert not h.can_redo
    assert len(h) == 1


def test_push_undo_keeps_redo_stack() -> None:
    h = History()
    h.push(_add("1"))
    h.push(_add("2"))
    h.push_redo(h.pop_undo())
    h.push_redo(h.pop_undo())

    entry = h.pop_redo()
    assert entry.person_id == "1"
    h.push_undo(entry)
    assert h.can_redo
    assert h.pop_redo().person_id == "2"


def test_empty_history() -> None:
    h = History()
    assert not h.can_undo and not h.can_redo
    assert h.pop_undo() is None
    assert h.pop_redo() is None


def test_clear() -> None:
    h = History()
    h.push(_add("1"))
    h.push_redo(_add("2"))
    h.clear()
    assert len(h) == 0
    assert not h.can_redo
