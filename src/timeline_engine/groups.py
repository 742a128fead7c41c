from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from .dates import add_days, day_difference
from .errors import CommandValidationError
from .models import Group, Item, Schedule
from .reschedule import shift_items

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupInterval:
    """Gap between two consecutive members of a group chain, sorted by start."""

    previous_id: int
    next_id: int
    gap_days: int


def create_group(
    schedule: Schedule,
    item_ids: Iterable[int],
    color: str,
    name: str | None = None,
) -> tuple[Schedule, Group]:
    """
    Group two or more ungrouped items; the given order becomes the membership order.

    Raises CommandValidationError when fewer than two distinct ids are given,
    an id is unknown, or a candidate already belongs to a group.
    """

    candidates = list(dict.fromkeys(item_ids))
    if len(candidates) < 2:
        raise CommandValidationError("A group needs at least two items")

    members = [schedule.require_item(item_id) for item_id in candidates]
    already_grouped = [item.id for item in members if item.group_id is not None]
    if already_grouped:
        raise CommandValidationError(f"Items already belong to a group: {already_grouped}")

    seq = schedule.next_group_seq
    taken = {existing.id for existing in schedule.groups}
    while f"group-{seq}" in taken:
        seq += 1
    group = Group(
        id=f"group-{seq}",
        task_ids=tuple(candidates),
        color=color,
        name=name,
    )
    logger.debug("Creating group %s with items %s", group.id, candidates)
    updated = schedule.with_items(replace(item, group_id=group.id) for item in members)
    return replace(updated, groups=updated.groups + (group,), next_group_seq=seq + 1), group


def ungroup_item(schedule: Schedule, item_id: int) -> Schedule:
    """Take one item out of its group; an item that is not grouped leaves the schedule unchanged."""
    item = schedule.require_item(item_id)
    if item.group_id is None:
        return schedule

    group = schedule.find_group(item.group_id)
    updated = schedule.with_items([replace(item, group_id=None)])
    if group is None:
        return updated
    remaining = tuple(member for member in group.task_ids if member != item.id)
    logger.debug("Removing item %s from group %s", item.id, group.id)
    return updated.with_group(replace(group, task_ids=remaining))


def dissolve_group(schedule: Schedule, group_id: str) -> Schedule:
    """Delete a group and clear group_id on all of its members."""
    group = schedule.require_group(group_id)
    members = [item for item in schedule.items if item.id in group]
    updated = schedule.with_items(replace(item, group_id=None) for item in members)
    return replace(updated, groups=tuple(g for g in updated.groups if g.id != group.id))


def rename_group(schedule: Schedule, group_id: str, name: str | None) -> Schedule:
    group = schedule.require_group(group_id)
    if name is not None:
        name = name.strip() or None
    if name == group.name:
        return schedule
    return schedule.with_group(replace(group, name=name))


def members_by_start(schedule: Schedule, group: Group) -> list[Item]:
    """Group members sorted by start; membership order breaks ties."""
    lookup = schedule.item_index()
    members = [lookup[item_id] for item_id in group.task_ids if item_id in lookup]
    return sorted(members, key=lambda item: item.start)


def group_intervals(schedule: Schedule, group_id: str) -> list[GroupInterval]:
    """List the gap between each member's end and the next member's start along the start-sorted chain."""
    group = schedule.require_group(group_id)
    chain = members_by_start(schedule, group)
    return [
        GroupInterval(previous_id=prev.id, next_id=nxt.id, gap_days=day_difference(nxt.start, prev.end))
        for prev, nxt in zip(chain, chain[1:])
    ]


def set_interval(
    schedule: Schedule,
    group_id: str,
    previous_item_id: int,
    item_to_shift_id: int,
    new_gap_days: int,
) -> Schedule:
    """
    Re-space one gap inside a group chain.

    The shifted item moves so it starts `new_gap_days` after the previous item's end.
    The same day delta is applied to every member starting on or after the shifted
    item's original start, so downstream members keep their durations and their
    gaps to each other. Members upstream of the shifted item do not move.
    The previous item must start before the shifted item, otherwise it would be
    dragged along with the downstream members.
    """

    group = schedule.require_group(group_id)
    previous = schedule.require_item(previous_item_id)
    to_shift = schedule.require_item(item_to_shift_id)
    for member in (previous, to_shift):
        if member.id not in group:
            raise CommandValidationError(f"Item {member.id} is not a member of group '{group.id}'")
    if previous.id == to_shift.id:
        raise CommandValidationError("An interval needs two different items")
    if previous.start >= to_shift.start:
        raise CommandValidationError(f"Item {previous.id} must start before item {to_shift.id}")

    new_start = add_days(previous.end, new_gap_days)
    delta = day_difference(new_start, to_shift.start)
    if delta == 0:
        return schedule

    downstream = [member for member in members_by_start(schedule, group) if member.start >= to_shift.start]
    logger.debug(
        "Group %s: interval %s -> %s set to %d day(s), shifting %s by %+d",
        group.id,
        previous.id,
        to_shift.id,
        new_gap_days,
        [member.id for member in downstream],
        delta,
    )
    return schedule.with_items(shift_items(downstream, delta))


def reorder_group(schedule: Schedule, group_id: str, new_ordered_ids: Iterable[int], gap_days: int = 1) -> Schedule:
    """
    Re-sequence a group in a new order.

    The first item keeps its dates. Each following item is placed `gap_days`
    after the previous item's new end and keeps its own calendar duration.
    The group's membership order becomes `new_ordered_ids`.
    """

    group = schedule.require_group(group_id)
    order = list(new_ordered_ids)
    if len(order) != len(set(order)) or set(order) != set(group.task_ids):
        raise CommandValidationError(
            f"Reorder of group '{group.id}' must list each member exactly once: got {order}, members {list(group.task_ids)}"
        )

    lookup = schedule.item_index()
    chain = [lookup[item_id] for item_id in order]
    updated: list[Item] = []
    last_end = chain[0].end
    for item in chain[1:]:
        start = add_days(last_end, gap_days)
        moved = item.with_dates(start, add_days(start, day_difference(item.end, item.start)))
        if moved != item:
            updated.append(moved)
        last_end = moved.end

    logger.debug("Reordering group %s to %s", group.id, order)
    return schedule.with_group(replace(group, task_ids=tuple(order))).with_items(updated)
