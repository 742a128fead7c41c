import datetime as dt

import pytest

from timeline_engine.config import EngineConfig
from timeline_engine.dates import DurationMode, business_day_duration
from timeline_engine.errors import CommandValidationError
from timeline_engine.models import Group, Item, Schedule
from timeline_engine.reschedule import move_item, resize_item

DAY0 = dt.date(2024, 1, 1)  # Monday


def _day(offset):
    return DAY0 + dt.timedelta(days=offset)


def _item(item_id, start, end, **kwargs):
    return Item(id=item_id, name=f"Item {item_id}", start=_day(start), end=_day(end), **kwargs)


def _grouped_schedule():
    a = _item(1, 0, 4, group_id="g")
    b = _item(2, 5, 9, group_id="g")
    c = _item(3, 0, 2)
    return Schedule(items=(a, b, c), groups=(Group(id="g", task_ids=(1, 2), color="#fff"),))


def test_move_ungrouped_item_preserves_calendar_duration():
    schedule = Schedule(items=(_item(1, 3, 8), _item(2, 0, 1)))

    moved = move_item(schedule, 1, _day(20))

    item = moved.find_item(1)
    assert (item.start, item.end) == (_day(20), _day(25))
    assert moved.find_item(2) is schedule.find_item(2)


def test_move_grouped_item_drags_whole_group():
    schedule = _grouped_schedule()

    moved = move_item(schedule, 1, _day(10))

    assert (moved.find_item(1).start, moved.find_item(1).end) == (_day(10), _day(14))
    assert (moved.find_item(2).start, moved.find_item(2).end) == (_day(15), _day(19))
    assert moved.find_item(3) == schedule.find_item(3)


def test_group_siblings_shift_by_same_delta_when_moving_any_member():
    schedule = _grouped_schedule()

    moved = move_item(schedule, 2, _day(2))

    for item_id in (1, 2):
        before, after = schedule.find_item(item_id), moved.find_item(item_id)
        assert (after.start - before.start).days == -3
        assert (after.end - before.end).days == -3


def test_zero_delta_move_returns_same_snapshot():
    schedule = _grouped_schedule()

    assert move_item(schedule, 1, _day(0)) is schedule


def test_move_is_idempotent_for_same_target():
    schedule = _grouped_schedule()

    once = move_item(schedule, 1, _day(7))
    twice = move_item(move_item(move_item(schedule, 1, _day(3)), 1, _day(12)), 1, _day(7))

    assert once == twice
    assert move_item(once, 1, _day(7)) is once


def test_business_mode_keeps_working_days():
    config = EngineConfig(single_move_duration=DurationMode.BUSINESS)
    schedule = Schedule(items=(_item(1, 0, 4),))  # Monday..Friday

    moved = move_item(schedule, 1, _day(3), config)  # Thursday

    assert moved.find_item(1).end == dt.date(2024, 1, 10)


def test_move_accepts_datetime_and_keeps_payload():
    schedule = Schedule(items=(_item(1, 0, 1, progress=40, notes="check valves", meta={"ref": "A-7"}),))

    moved = move_item(schedule, 1, dt.datetime(2024, 1, 3, 15, 30))

    item = moved.find_item(1)
    assert (item.start, item.end) == (_day(2), _day(3))
    assert (item.progress, item.notes, item.meta) == (40, "check valves", {"ref": "A-7"})


def test_move_unknown_item_is_rejected():
    with pytest.raises(CommandValidationError):
        move_item(Schedule(), 7, DAY0)


def test_resize_end_before_start_clamps_to_start():
    schedule = Schedule(items=(_item(1, 5, 10),))

    resized = resize_item(schedule, 1, "end", _day(-1))

    assert (resized.find_item(1).start, resized.find_item(1).end) == (_day(5), _day(5))


def test_resize_start_after_end_clamps_to_end():
    schedule = Schedule(items=(_item(1, 5, 10),))

    resized = resize_item(schedule, 1, "start", _day(30))

    assert (resized.find_item(1).start, resized.find_item(1).end) == (_day(10), _day(10))


def test_resize_never_inverts():
    schedule = Schedule(items=(_item(1, 5, 10),))

    for side in ("start", "end"):
        for offset in range(-3, 15):
            item = resize_item(schedule, 1, side, _day(offset)).find_item(1)
            assert item.start <= item.end


def test_resize_leaves_group_siblings_alone():
    schedule = _grouped_schedule()

    resized = resize_item(schedule, 1, "end", _day(7))

    assert resized.find_item(1).end == _day(7)
    assert resized.find_item(2) is schedule.find_item(2)


def test_resize_unknown_side_is_rejected():
    with pytest.raises(CommandValidationError):
        resize_item(Schedule(items=(_item(1, 0, 1),)), 1, "middle", _day(0))


def test_grouped_business_move_keeps_each_members_working_days():
    config = EngineConfig(group_move_duration=DurationMode.BUSINESS)
    a = _item(1, 0, 4, group_id="g")  # Monday..Friday
    b = _item(2, 7, 9, group_id="g")  # Monday..Wednesday
    schedule = Schedule(items=(a, b), groups=(Group(id="g", task_ids=(1, 2), color="#fff"),))

    moved = move_item(schedule, 1, _day(3), config)  # Thursday

    assert (moved.find_item(1).start, moved.find_item(1).end) == (_day(3), _day(9))
    assert (moved.find_item(2).start, moved.find_item(2).end) == (_day(10), _day(14))
    for before in (a, b):
        after = moved.find_item(before.id)
        assert after.start - before.start == dt.timedelta(days=3)
        assert business_day_duration(after.start, after.end) == business_day_duration(before.start, before.end)
        assert after.start <= after.end
