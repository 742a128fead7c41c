from __future__ import annotations

from datetime import date
from typing import Collection, Iterable, List

from .dates import is_same_day
from .lanes import lane_count, pack_lanes, week_windows
from .models import Item, WeekRow


def visible_items(items: Iterable[Item], exclude_units: Collection[str] = ()) -> list[Item]:
    """Drop items whose executing unit is hidden; items without a unit always stay."""
    return [item for item in items if item.executing_unit is None or item.executing_unit not in exclude_units]


def to_week_rows(
    items: Iterable[Item],
    first_day: date,
    last_day: date,
    first_weekday: int = 6,
    exclude_units: Collection[str] = (),
) -> list[WeekRow]:
    """
    Split first_day..last_day into calendar weeks and pack each week's items into lanes.

    Weeks are emitted in date order and always span seven days, so the first and
    last rows may include days outside the requested range. Weeks with no
    visible items are still emitted with an empty placement list. Items of
    hidden executing units are removed before packing, so they free their lanes.
    """

    item_list = visible_items(items, exclude_units)
    rows: List[WeekRow] = []

    for order, (start, end) in enumerate(week_windows(first_day, last_day, first_weekday)):
        placements = pack_lanes(item_list, start, end)
        rows.append(
            WeekRow(
                order=order,
                week_start=start,
                week_end=end,
                placements=placements,
                lane_count=lane_count(placements),
            )
        )

    return rows


def items_starting_on(items: Iterable[Item], day: date) -> list[Item]:
    """Items whose start falls on `day`, ordered by id."""
    return sorted((item for item in items if is_same_day(item.start, day)), key=lambda item: item.id)
