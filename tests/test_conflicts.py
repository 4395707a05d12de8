from datetime import datetime, timedelta, timezone
from itertools import permutations
import pytest

from kidschedule.models import CalendarEvent
from kidschedule.conflicts import detect_conflicts, normalize_event_range

UTC = timezone.utc


def ev(eid, start, end, all_day=False, category="activity"):
    return CalendarEvent(
        id=eid, family_id="fam-1", title=f"Event {eid}", category=category,
        start_at=start, end_at=end, all_day=all_day,
    )


def t(h, mi=0, d=10):
    return datetime(2024, 1, d, h, mi, tzinfo=UTC)


def test_direct_overlap_without_window():
    e1 = ev("e1", t(14), t(15))
    e2 = ev("e2", t(14, 50), t(15, 30))
    conflicts = detect_conflicts([e1, e2], 0)
    assert len(conflicts) == 1
    c = conflicts[0]
    assert c.overlap_type == "overlap"
    assert c.minutes_apart == 50
    assert c.primary_event == e1 and c.conflicting_event == e2


def test_buffer_window_only():
    e1 = ev("e1", t(14), t(15))
    e3 = ev("e3", t(15, 10), t(15, 40))
    conflicts = detect_conflicts([e1, e3], 30)
    assert [c.overlap_type for c in conflicts] == ["buffer_window"]
    assert conflicts[0].minutes_apart == 70
    # ohne Fenster kein Konflikt
    assert detect_conflicts([e1, e3], 0) == []


def test_back_to_back_is_not_an_overlap():
    e1 = ev("e1", t(14), t(15))
    e4 = ev("e4", t(15), t(16))
    assert detect_conflicts([e1, e4], 0) == []
    assert [c.overlap_type for c in detect_conflicts([e1, e4], 1)] == ["buffer_window"]


def test_negative_window_is_clamped_to_zero():
    e1 = ev("e1", t(14), t(15))
    e2 = ev("e2", t(14, 50), t(15, 30))
    e3 = ev("e3", t(15, 10), t(15, 40))
    assert detect_conflicts([e1, e3], -30) == []
    assert [c.overlap_type for c in detect_conflicts([e1, e2], -30)] == ["overlap"]


def test_all_day_event_covers_whole_utc_day():
    holiday = ev("h", t(0), t(0), all_day=True, category="holiday")
    start, end = normalize_event_range(holiday)
    assert start == t(0)
    assert end == t(0, d=11)

    morning = ev("m", t(9), t(10))
    assert detect_conflicts([holiday, morning], 0)[0].overlap_type == "overlap"

    next_day = ev("n", t(0, 30, d=11), t(1, d=11))
    assert detect_conflicts([holiday, next_day], 0) == []
    assert detect_conflicts([holiday, next_day], 60)[0].overlap_type == "buffer_window"


def test_multi_day_all_day_event():
    trip = ev("trip", t(0, d=10), t(0, d=12), all_day=True)
    start, end = normalize_event_range(trip)
    assert (end - start).days == 3


def test_end_before_start_is_clamped():
    broken = ev("b", t(14, 30), t(14))
    start, end = normalize_event_range(broken)
    assert start == end == t(14, 30)
    other = ev("o", t(14), t(15))
    assert detect_conflicts([broken, other], 0)[0].overlap_type == "overlap"


def test_sorted_by_minutes_apart():
    events = [
        ev("a", t(9), t(12)),
        ev("b", t(11), t(11, 30)),
        ev("c", t(9, 5), t(9, 20)),
    ]
    conflicts = detect_conflicts(events, 0)
    assert [c.minutes_apart for c in conflicts] == sorted(c.minutes_apart for c in conflicts)
    assert [(c.primary_event.id, c.conflicting_event.id) for c in conflicts] == [
        ("a", "c"), ("a", "b"),
    ]


def test_result_independent_of_input_order():
    events = [
        ev("a", t(9), t(10)),
        ev("b", t(9, 30), t(11)),
        ev("c", t(11, 20), t(12)),
        ev("d", t(9, 30), t(9, 45)),
    ]
    expected = detect_conflicts(events, 30)
    for perm in permutations(events):
        assert detect_conflicts(list(perm), 30) == expected


def test_every_conflict_satisfies_buffered_predicate():
    events = [ev(f"x{i}", t(8 + i % 5, (i * 17) % 60), t(9 + i % 5, (i * 17) % 60)) for i in range(8)]
    window_minutes = 20
    for c in detect_conflicts(events, window_minutes):
        a0, a1 = normalize_event_range(c.primary_event)
        b0, b1 = normalize_event_range(c.conflicting_event)
        w = timedelta(minutes=window_minutes)
        assert a0 < b1 + w and b0 < a1 + w
        assert (c.overlap_type == "overlap") == (a0 < b1 and b0 < a1)


@pytest.mark.parametrize("events", [[], [ev("solo", t(9), t(10))]])
def test_nothing_to_compare(events):
    assert detect_conflicts(events, 120) == []
