from __future__ import annotations

from famtree.timeline import aggregate_timeline

from conftest import make_person


def test_births_and_deaths_sorted_oldest_first(family_persons) -> None:
    events = aggregate_timeline(family_persons)
    assert [e["id"] for e in events] == [
        "birth-a",
        "birth-b",
        "birth-c",
        "birth-d",
        "birth-e",
        "death-a",
    ]
    assert events[0]["label"] == "Albert Doe born"
    assert events[0]["date"] == "1920-03-01"
    assert events[-1]["label"] == "Albert Doe died"


def test_unparseable_dates_are_skipped() -> None:
    persons = [make_person("x", "X", dob="sometime in spring"), make_person("y", "Y", dob="2001-05-06T10:00:00")]
    events = aggregate_timeline(persons)
    assert [e["id"] for e in events] == ["birth-y"]
    assert events[0]["date"] == "2001-05-06"


def test_life_events_use_first_name_and_title(family_persons) -> None:
    life_events = [
        {"id": "ev1", "person_id": "c", "event_type": "graduation", "title": "Graduated", "date": "1972-06-01"},
        {"id": "ev2", "person_id": "nobody", "title": "Ghost", "date": "1972-06-01"},
        {"id": "ev3", "person_id": "c", "title": "Undated", "date": None},
    ]
    events = aggregate_timeline(family_persons, life_events)
    extra = [e for e in events if e["type"] == "life_event"]
    assert len(extra) == 1
    assert extra[0]["id"] == "event-ev1"
    assert extra[0]["label"] == "Carl: Graduated"
    assert extra[0]["subtype"] == "graduation"
    ids = [e["id"] for e in events]
    assert ids.index("birth-e") > ids.index("event-ev1") > ids.index("birth-d")


def test_same_date_keeps_input_order() -> None:
    persons = [make_person("x", "X", dob="2000-01-01"), make_person("y", "Y", dob="2000-01-01")]
    assert [e["person_id"] for e in aggregate_timeline(persons)] == ["x", "y"]
