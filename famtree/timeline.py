from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Optional

from .model import as_persons
from .traversal import PersonsArg


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def aggregate_timeline(
    persons: PersonsArg,
    life_events: Iterable[Mapping[str, Any]] = (),
) -> list[dict[str, Any]]:
    """Births, deaths and life events with a usable date, oldest first.

    Events whose date cannot be parsed, and life events for people not in
    ``persons``, are left out.
    """

    persons_l = as_persons(persons)
    by_id = {p.id: p for p in persons_l}
    events: list[tuple[date, dict[str, Any]]] = []

    for p in persons_l:
        born = _parse_date(p.dob)
        if born is not None:
            events.append(
                (born, {"id": f"birth-{p.id}", "type": "birth", "person_id": p.id, "label": f"{p.display_name} born"})
            )
    for p in persons_l:
        died = _parse_date(p.dod)
        if died is not None:
            events.append(
                (died, {"id": f"death-{p.id}", "type": "death", "person_id": p.id, "label": f"{p.display_name} died"})
            )

    for ev in life_events or ():
        when = _parse_date(ev.get("date"))
        person = by_id.get(str(ev.get("person_id")))
        if when is None or person is None:
            continue
        events.append(
            (
                when,
                {
                    "id": f"event-{ev.get('id')}",
                    "type": "life_event",
                    "subtype": ev.get("event_type"),
                    "person_id": person.id,
                    "label": f"{person.first_name}: {ev.get('title') or ''}".rstrip(),
                    "description": ev.get("description"),
                },
            )
        )

    events.sort(key=lambda item: item[0])
    out: list[dict[str, Any]] = []
    for when, ev in events:
        ev["date"] = when.isoformat()
        out.append(ev)
    return out
