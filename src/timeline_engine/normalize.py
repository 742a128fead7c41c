from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from .errors import ScheduleConsistencyError
from .models import Group, Schedule

logger = logging.getLogger(__name__)

NormalizeStep = Callable[[Schedule], Schedule]


def drop_unknown_members(schedule: Schedule) -> Schedule:
    """Remove group memberships that point at items no longer in the schedule."""
    known = {item.id for item in schedule.items}
    groups: list[Group] = []
    changed = False
    for group in schedule.groups:
        kept = tuple(item_id for item_id in group.task_ids if item_id in known)
        if kept != group.task_ids:
            changed = True
            logger.debug("Group %s: dropping unknown members %s", group.id, sorted(set(group.task_ids) - set(kept)))
            group = replace(group, task_ids=kept)
        groups.append(group)
    return replace(schedule, groups=tuple(groups)) if changed else schedule


def drop_duplicate_members(schedule: Schedule) -> Schedule:
    """Keep each item in the first group listing it, and only once within that group."""
    claimed: set[int] = set()
    groups: list[Group] = []
    changed = False
    for group in schedule.groups:
        kept: list[int] = []
        for item_id in group.task_ids:
            if item_id in claimed:
                changed = True
                logger.warning("Item %s listed twice across groups; keeping first membership", item_id)
                continue
            claimed.add(item_id)
            kept.append(item_id)
        if len(kept) != len(group.task_ids):
            group = replace(group, task_ids=tuple(kept))
        groups.append(group)
    return replace(schedule, groups=tuple(groups)) if changed else schedule


def dissolve_undersized_groups(schedule: Schedule) -> Schedule:
    """Delete every group with fewer than two members."""
    kept = tuple(group for group in schedule.groups if len(group.task_ids) >= 2)
    if len(kept) == len(schedule.groups):
        return schedule
    for group in schedule.groups:
        if len(group.task_ids) < 2:
            logger.info("Dissolving group %s (%d member(s) left)", group.id, len(group.task_ids))
    return replace(schedule, groups=kept)


def sync_group_ids(schedule: Schedule) -> Schedule:
    """Make every item's group_id agree with group membership (membership wins)."""
    owner = {item_id: group.id for group in schedule.groups for item_id in group.task_ids}
    updated = [
        replace(item, group_id=owner.get(item.id))
        for item in schedule.items
        if item.group_id != owner.get(item.id)
    ]
    return schedule.with_items(updated)


def strip_dangling_predecessors(schedule: Schedule) -> Schedule:
    """Clear predecessor_id on items whose predecessor is not in the schedule."""
    known = {item.id for item in schedule.items}
    updated = [
        replace(item, predecessor_id=None)
        for item in schedule.items
        if item.predecessor_id is not None and item.predecessor_id not in known
    ]
    for item in updated:
        logger.debug("Item %s: clearing dangling predecessor reference", item.id)
    return schedule.with_items(updated)


MEMBERSHIP_STEPS: tuple[NormalizeStep, ...] = (
    drop_unknown_members,
    drop_duplicate_members,
    dissolve_undersized_groups,
    sync_group_ids,
)

STRUCTURAL_STEPS: tuple[NormalizeStep, ...] = MEMBERSHIP_STEPS + (strip_dangling_predecessors,)


def normalize(schedule: Schedule, steps: tuple[NormalizeStep, ...] = MEMBERSHIP_STEPS) -> Schedule:
    """Run the cleanup steps in order and return the resulting snapshot."""
    for step in steps:
        schedule = step(schedule)
    return schedule


def check_consistency(schedule: Schedule) -> None:
    """
    Verify item/group cross-references.

    Raises ScheduleConsistencyError on duplicate ids, groups below two members,
    items claimed by two groups, or group_id values that disagree with membership.
    """

    item_ids = [item.id for item in schedule.items]
    if len(item_ids) != len(set(item_ids)):
        raise ScheduleConsistencyError("Duplicate item ids in schedule")

    group_ids = [group.id for group in schedule.groups]
    if len(group_ids) != len(set(group_ids)):
        raise ScheduleConsistencyError("Duplicate group ids in schedule")

    owner: dict[int, str] = {}
    known = set(item_ids)
    for group in schedule.groups:
        if len(group.task_ids) < 2:
            raise ScheduleConsistencyError(f"Group '{group.id}' has fewer than two members")
        for item_id in group.task_ids:
            if item_id not in known:
                raise ScheduleConsistencyError(f"Group '{group.id}' lists unknown item {item_id}")
            if item_id in owner:
                raise ScheduleConsistencyError(
                    f"Item {item_id} belongs to both '{owner[item_id]}' and '{group.id}'"
                )
            owner[item_id] = group.id

    for item in schedule.items:
        if item.group_id != owner.get(item.id):
            raise ScheduleConsistencyError(
                f"Item {item.id} has group_id {item.group_id!r} but membership says {owner.get(item.id)!r}"
            )
        if item.start > item.end:
            raise ScheduleConsistencyError(f"Item {item.id} starts {item.start} after it ends {item.end}")
