from datetime import datetime

from callmerge.models import CallEvent
from callmerge.services.grouping import group_events, order_events
from callmerge.tests.factories import make_event


def _at(call_id, minute, **kwargs):
    return make_event(call_id, startTime=f"2025-12-15T15:{minute:02d}:00-05:00", **kwargs)


def test_every_event_lands_in_exactly_one_group():
    events = [_at("a", 1), _at("b", 2), _at("a", 3), _at("c", 4), _at("b", 5)]
    groups, malformed = group_events(events)
    assert malformed == []
    assert set(groups) == {"a", "b", "c"}
    assert all(groups[call_id] for call_id in groups)
    flattened = [event for group in groups.values() for event in group]
    assert len(flattened) == len(events)
    assert {id(event) for event in flattened} == {id(event) for event in events}
    for call_id, group in groups.items():
        assert all(event.call_id == call_id for event in group)


def test_groups_are_ordered_by_event_time():
    late = _at("a", 9, status="ended")
    early = _at("a", 1)
    middle = _at("a", 5, status="answered")
    groups, _ = group_events([late, early, middle])
    assert groups["a"] == [early, middle, late]


def test_missing_event_time_falls_back_to_call_start_time():
    ended = _at("a", 7, status="ended")
    no_time = make_event("a", startTime="", callStartTime="2025-12-15T15:03:00-05:00")
    first = _at("a", 1)
    assert order_events([ended, no_time, first]) == [first, no_time, ended]


def test_identical_timestamps_keep_arrival_order():
    first = _at("a", 5, UniqueId="leg-1")
    second = _at("a", 5, UniqueId="leg-2", status="answered")
    third = _at("a", 5, UniqueId="leg-3", destinationType="phone")
    assert [event.leg_id for event in order_events([first, second, third])] == ["leg-1", "leg-2", "leg-3"]


def test_events_without_any_timestamp_sort_last():
    undated = make_event("a", startTime="", callStartTime="")
    dated = _at("a", 1)
    assert order_events([undated, dated]) == [dated, undated]


def test_events_without_call_id_are_excluded():
    orphan = CallEvent(call_id=None, event_time=datetime(2025, 12, 15, 20, 0))
    blank = CallEvent(call_id="  ", event_time=datetime(2025, 12, 15, 20, 0))
    good = _at("a", 1)
    groups, malformed = group_events([orphan, good, blank])
    assert groups == {"a": [good]}
    assert malformed == [orphan, blank]


def test_single_event_group():
    only = _at("solo", 1)
    groups, _ = group_events([only])
    assert groups == {"solo": [only]}


def test_empty_input():
    assert group_events([]) == ({}, [])
