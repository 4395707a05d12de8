import json
from datetime import date, datetime, timezone
import pytest

from kidschedule.data import (
    RecordParseError, load_calendar_input, parse_change_request, parse_event,
    parse_family, parse_instant,
)

UTC = timezone.utc

FAMILY = {
    "id": "fam-1",
    "parents": [
        {"id": "p-anna", "name": "Anna", "email": "anna@example.com"},
        {"id": "p-ben", "name": "Ben", "email": "ben@example.com"},
    ],
    "children": [{"id": "c1", "firstName": "Mia", "lastName": "Berg", "dateOfBirth": "2016-05-04"}],
    "custodyAnchorDate": "2024-01-01",
    "schedule": {
        "id": "s1",
        "name": "Alternating Weeks",
        "transitionHour": 18,
        "exchangeLocation": "School",
        "blocks": [
            {"parentId": "p-anna", "days": 7, "label": "Week A"},
            {"parentId": "p-ben", "days": 7, "label": "Week B"},
        ],
    },
}


def test_parse_family_resolves_parent_ids_to_indexes():
    family = parse_family(FAMILY)
    assert [p.name for p in family.parents] == ["Anna", "Ben"]
    assert family.custody_anchor_date == date(2024, 1, 1)
    assert [b.owner_parent_index for b in family.schedule.blocks] == [0, 1]
    assert family.schedule.transition_hour == 18
    assert family.schedule.exchange_location == "School"
    assert family.children[0].date_of_birth == date(2016, 5, 4)


def test_parse_family_snake_case_and_index_owner():
    raw = {
        "id": "fam-2",
        "parents": FAMILY["parents"],
        "custody_anchor_date": "2024-03-04",
        "schedule": {"blocks": [{"owner_parent_index": 1, "days": 3}, {"owner_parent_index": 0, "days": 4}]},
    }
    family = parse_family(raw)
    assert family.schedule.transition_hour == 17
    assert family.schedule.blocks[0].owner_parent_index == 1


@pytest.mark.parametrize("change", [
    {"parents": FAMILY["parents"][:1]},
    {"custodyAnchorDate": None},
    {"schedule": {"blocks": [{"parentId": "stranger", "days": 2}]}},
    {"schedule": {"blocks": [{"parentId": "p-anna", "days": "two"}]}},
])
def test_parse_family_rejects_broken_records(change):
    raw = dict(FAMILY, **change)
    with pytest.raises(RecordParseError):
        parse_family(raw)


def test_parse_event_converts_to_utc():
    event = parse_event({
        "id": "e1", "familyId": "fam-1", "title": "Dentist", "category": "medical",
        "startAt": "2024-01-10T14:00:00+02:00", "endAt": "2024-01-10T15:00:00Z",
        "allDay": False, "createdBy": "p-anna",
    })
    assert event.start_at == datetime(2024, 1, 10, 12, tzinfo=UTC)
    assert event.end_at == datetime(2024, 1, 10, 15, tzinfo=UTC)
    assert event.category == "medical"
    assert event.confirmation_status == "confirmed"


def test_parse_event_unknown_category_falls_back_to_other():
    event = parse_event({"id": "e2", "title": "?", "category": "custody", "startAt": "2024-01-10"})
    assert event.category == "other"
    assert event.end_at == event.start_at == datetime(2024, 1, 10, tzinfo=UTC)


def test_parse_event_bad_timestamp():
    with pytest.raises(RecordParseError):
        parse_event({"id": "e3", "title": "x", "startAt": "next tuesday"})


def test_parse_instant_naive_is_utc():
    assert parse_instant("2024-01-10T08:15:00") == datetime(2024, 1, 10, 8, 15, tzinfo=UTC)


def test_parse_change_request():
    r = parse_change_request({
        "id": "r1", "familyId": "fam-1", "requestedBy": "p-ben", "title": "Swap weekend",
        "givingUpPeriodStart": "2023-12-30T00:00:00Z", "givingUpPeriodEnd": "2024-01-02",
        "requestedMakeUpStart": "2024-01-20", "requestedMakeUpEnd": "2024-01-22",
        "status": "pending", "createdAt": "2023-12-01T09:00:00Z",
    })
    assert r.giving_up_start == date(2023, 12, 30)
    assert r.giving_up_end == date(2024, 1, 2)
    assert r.requested_make_up_end == date(2024, 1, 22)
    assert r.created_at == datetime(2023, 12, 1, 9, tzinfo=UTC)
    assert r.responded_at is None


def test_load_calendar_input(tmp_path):
    path = tmp_path / "input.json"
    path.write_text(json.dumps({
        "family": FAMILY,
        "events": [{"id": "e1", "title": "Soccer", "category": "activity",
                    "startAt": "2024-01-10T16:00:00Z", "endAt": "2024-01-10T17:00:00Z"}],
        "changeRequests": [{"id": "r1", "givingUpPeriodStart": "2024-01-05",
                            "givingUpPeriodEnd": "2024-01-06", "status": "declined"}],
    }), encoding="utf-8")
    loaded = load_calendar_input(str(path))
    assert loaded.family.id == "fam-1"
    assert [e.id for e in loaded.events] == ["e1"]
    assert loaded.change_requests[0].status == "declined"


def test_load_calendar_input_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RecordParseError):
        load_calendar_input(str(path))
