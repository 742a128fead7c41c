from __future__ import annotations

import logging
from datetime import date

from .config import EngineConfig
from .dates import DurationMode, add_days, day_difference, preserve_duration, to_day
from .errors import CommandValidationError
from .models import Item, ResizeSide, Schedule

logger = logging.getLogger(__name__)


def move_item(schedule: Schedule, item_id: int, new_start: date, config: EngineConfig | None = None) -> Schedule:
    """
    Move an item so it starts on `new_start` and return the new snapshot.

    - delta = new_start - item.start; a zero delta returns `schedule` unchanged.
    - Grouped items drag the whole group: every member's start shifts by delta.
    - Each moved item's end is recomputed from its old length using the configured
      duration mode (group_move_duration for groups, single_move_duration otherwise).

    Calling this repeatedly with the same final `new_start` gives the same result.
    """

    config = config or EngineConfig()
    item = schedule.require_item(item_id)
    new_start = to_day(new_start)
    delta = day_difference(new_start, item.start)
    if delta == 0:
        return schedule

    group = schedule.find_group(item.group_id) if item.group_id is not None else None
    if group is None:
        logger.debug("Moving item %s by %+d day(s)", item.id, delta)
        moved = _shift(item, delta, config.single_move_duration)
        return schedule.with_items([moved])

    logger.debug("Moving group %s by %+d day(s) via item %s", group.id, delta, item.id)
    members = [member for member in schedule.items if member.id in group]
    return schedule.with_items(_shift(member, delta, config.group_move_duration) for member in members)


def resize_item(schedule: Schedule, item_id: int, side: ResizeSide, new_date: date) -> Schedule:
    """
    Drag one boundary of an item to `new_date`.

    The start never passes the end and the end never passes the start; an
    inverting drag is clamped to a one-day item. Group siblings are untouched.
    """

    item = schedule.require_item(item_id)
    new_date = to_day(new_date)

    if side == "start":
        start, end = min(new_date, item.end), item.end
    elif side == "end":
        start, end = item.start, max(new_date, item.start)
    else:
        raise CommandValidationError(f"Unknown resize side '{side}', expected 'start' or 'end'")

    if start == item.start and end == item.end:
        return schedule

    logger.debug("Resizing item %s %s to %s (now %s..%s)", item.id, side, new_date, start, end)
    return schedule.with_items([item.with_dates(start, end)])


def shift_items(items: list[Item], delta: int) -> list[Item]:
    """Shift start and end of every item by `delta` calendar days."""
    return [item.with_dates(add_days(item.start, delta), add_days(item.end, delta)) for item in items]


def _shift(item: Item, delta: int, mode: DurationMode) -> Item:
    start = add_days(item.start, delta)
    return item.with_dates(start, preserve_duration(item.start, item.end, start, mode))
