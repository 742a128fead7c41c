from __future__ import annotations

from datetime import date
from typing import Iterable, Iterator

from .dates import add_days, day_difference, ranges_overlap, week_start
from .models import Item, LanePlacement


def pack_lanes(items: Iterable[Item], window_start: date, window_end: date) -> list[LanePlacement]:
    """
    Assign each item visible in [window_start, window_end] to a lane.

    - Items are clipped to the window; items with no visible day are left out.
    - Order is clipped start ascending, then longer (unclipped) items first; input
      order settles remaining ties so the layout is deterministic.
    - Each item takes the lowest lane whose occupied days do not intersect its
      clipped span (first fit); a new lane opens when none fits.

    Placements are returned in packing order.
    """

    if window_end < window_start:
        raise ValueError(f"window end {window_end} precedes window start {window_start}")

    window_days = day_difference(window_end, window_start) + 1
    visible = [item for item in items if ranges_overlap(item.start, item.end, window_start, window_end)]
    ordered = sorted(visible, key=lambda item: (max(item.start, window_start), -item.duration_days))

    lanes: list[list[bool]] = []
    placements: list[LanePlacement] = []

    for item in ordered:
        first_day = 0 if item.start < window_start else day_difference(item.start, window_start)
        last_day = window_days - 1 if item.end > window_end else day_difference(item.end, window_start)

        lane = 0
        while True:
            if lane == len(lanes):
                lanes.append([False] * window_days)
            occupancy = lanes[lane]
            if not any(occupancy[first_day : last_day + 1]):
                for offset in range(first_day, last_day + 1):
                    occupancy[offset] = True
                break
            lane += 1

        placements.append(
            LanePlacement(
                item_id=item.id,
                lane=lane,
                start_offset=first_day,
                span_days=last_day - first_day + 1,
                is_true_start=item.start == add_days(window_start, first_day),
                is_true_end=item.end == add_days(window_start, last_day),
            )
        )

    return placements


def lane_count(placements: Iterable[LanePlacement]) -> int:
    return max((placement.lane for placement in placements), default=-1) + 1


def week_windows(first_day: date, last_day: date, first_weekday: int = 6) -> Iterator[tuple[date, date]]:
    """
    Yield consecutive (week_start, week_end) windows covering first_day..last_day.

    Windows are aligned so each starts on `first_weekday`; the first window may
    begin before `first_day` and the last may end after `last_day`.
    """

    if last_day < first_day:
        return
    cursor = week_start(first_day, first_weekday)
    while cursor <= last_day:
        yield cursor, add_days(cursor, 6)
        cursor = add_days(cursor, 7)
