from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Collection, Iterable

from . import groups as group_ops
from .calendar_rows import items_starting_on, to_week_rows, visible_items
from .config import EngineConfig
from .conflicts import detect_conflicts
from .dates import to_day
from .errors import CommandValidationError
from .lanes import pack_lanes
from .models import CommandResult, ConflictWarning, Group, Item, LanePlacement, ResizeSide, Schedule, WeekRow
from .normalize import MEMBERSHIP_STEPS, STRUCTURAL_STEPS, NormalizeStep, check_consistency, normalize
from .reschedule import move_item, resize_item

logger = logging.getLogger(__name__)

_PAYLOAD_FIELDS = {"predecessor_id", "progress", "executing_unit", "notes", "meta"}


class ScheduleEngine:
    """
    Single entry point for every schedule mutation.

    The engine keeps no state besides its config: each command takes a Schedule
    snapshot, validates the request, delegates to the reschedule/group logic,
    normalises cross-references, and returns a CommandResult carrying the new
    snapshot and the freshly detected predecessor warnings. Rejected commands
    raise CommandValidationError and produce no snapshot.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()

    # Queries

    def warnings(self, schedule: Schedule) -> list[ConflictWarning]:
        return detect_conflicts(schedule.items)

    def layout(
        self,
        schedule: Schedule,
        window_start: date,
        window_end: date,
        exclude_units: Collection[str] = (),
    ) -> list[LanePlacement]:
        """Lane placements for every item visible in the window, minus hidden executing units."""
        items = visible_items(schedule.items, exclude_units)
        return pack_lanes(items, to_day(window_start), to_day(window_end))

    def calendar(
        self,
        schedule: Schedule,
        first_day: date,
        last_day: date,
        exclude_units: Collection[str] = (),
    ) -> list[WeekRow]:
        """Week-by-week lane layout covering first_day..last_day."""
        return to_week_rows(
            schedule.items,
            to_day(first_day),
            to_day(last_day),
            self.config.first_weekday,
            exclude_units,
        )

    def day_view(self, schedule: Schedule, day: date) -> list[Item]:
        return items_starting_on(schedule.items, to_day(day))

    def intervals(self, schedule: Schedule, group_id: str) -> list[group_ops.GroupInterval]:
        return group_ops.group_intervals(schedule, group_id)

    # Date commands

    def move_item(self, schedule: Schedule, item_id: int, new_start: date) -> CommandResult:
        return self._commit(schedule, move_item(schedule, item_id, new_start, self.config))

    def resize_item(self, schedule: Schedule, item_id: int, side: ResizeSide, new_date: date) -> CommandResult:
        return self._commit(schedule, resize_item(schedule, item_id, side, new_date))

    def set_interval(
        self,
        schedule: Schedule,
        group_id: str,
        previous_item_id: int,
        item_to_shift_id: int,
        new_gap_days: int,
    ) -> CommandResult:
        updated = group_ops.set_interval(schedule, group_id, previous_item_id, item_to_shift_id, new_gap_days)
        return self._commit(schedule, updated)

    def reorder_group(self, schedule: Schedule, group_id: str, new_ordered_ids: Iterable[int]) -> CommandResult:
        updated = group_ops.reorder_group(schedule, group_id, new_ordered_ids, self.config.reorder_gap_days)
        return self._commit(schedule, updated)

    # Structural commands

    def create_group(self, schedule: Schedule, item_ids: Iterable[int], name: str | None = None) -> CommandResult:
        color = self.config.color_for(len(schedule.groups))
        updated, group = group_ops.create_group(schedule, item_ids, color=color, name=name)
        logger.info("Created group %s with %d items", group.id, len(group.task_ids))
        return self._commit(schedule, updated, MEMBERSHIP_STEPS)

    def ungroup_item(self, schedule: Schedule, item_id: int) -> CommandResult:
        return self._commit(schedule, group_ops.ungroup_item(schedule, item_id), MEMBERSHIP_STEPS)

    def dissolve_group(self, schedule: Schedule, group_id: str) -> CommandResult:
        return self._commit(schedule, group_ops.dissolve_group(schedule, group_id), MEMBERSHIP_STEPS)

    def rename_group(self, schedule: Schedule, group_id: str, name: str | None) -> CommandResult:
        return self._commit(schedule, group_ops.rename_group(schedule, group_id, name))

    def delete_items(self, schedule: Schedule, item_ids: Iterable[int]) -> CommandResult:
        """
        Delete items by id.

        Survivors pointing at a deleted item lose their predecessor, deleted items
        leave their groups, and groups left with fewer than two members dissolve.
        """

        doomed = set(item_ids)
        for item_id in sorted(doomed):
            schedule.require_item(item_id)
        if not doomed:
            return self._commit(schedule, schedule)

        logger.info("Deleting items %s", sorted(doomed))
        kept = tuple(item for item in schedule.items if item.id not in doomed)
        return self._commit(schedule, replace(schedule, items=kept), STRUCTURAL_STEPS)

    def add_item(
        self,
        schedule: Schedule,
        name: str,
        start: date,
        end: date | None = None,
        **payload: Any,
    ) -> CommandResult:
        """Create an item with a fresh id; `end` defaults to `start` (one-day item)."""
        _check_payload(payload)
        start = to_day(start)
        end = to_day(end) if end is not None else start
        item = Item(
            id=schedule.next_item_id,
            name=_clean_name(name),
            start=start,
            end=end,
            **payload,
        )
        _check_bounds(item)
        _check_predecessor(item)
        updated = replace(
            schedule,
            items=schedule.items + (item,),
            next_item_id=schedule.next_item_id + 1,
        )
        return self._commit(schedule, updated)

    def update_item(
        self,
        schedule: Schedule,
        item_id: int,
        name: str | None = None,
        start: date | None = None,
        end: date | None = None,
        **payload: Any,
    ) -> CommandResult:
        """Edit an item's name, explicit bounds, predecessor or payload fields."""
        _check_payload(payload)
        item = schedule.require_item(item_id)
        changes: dict[str, Any] = dict(payload)
        if name is not None:
            changes["name"] = _clean_name(name)
        if start is not None:
            changes["start"] = to_day(start)
        if end is not None:
            changes["end"] = to_day(end)
        edited = replace(item, **changes)
        _check_bounds(edited)
        _check_predecessor(edited)
        return self._commit(schedule, schedule.with_items([edited]))

    def replace_items(self, items: Iterable[Item], groups: Iterable[Group] = ()) -> CommandResult:
        """
        Replace the whole collection with an imported batch.

        Item ids must be unique within the batch. Group and predecessor references
        that do not resolve inside the batch are dropped.
        """

        batch = tuple(items)
        seen: set[int] = set()
        for item in batch:
            if item.id in seen:
                raise CommandValidationError(f"Duplicate item id {item.id} in imported batch")
            seen.add(item.id)
            _check_bounds(item)

        group_list = tuple(groups)
        group_ids = {group.id for group in group_list}
        if len(group_ids) != len(group_list):
            raise CommandValidationError("Duplicate group ids in imported batch")
        batch = tuple(
            replace(item, group_id=None) if item.group_id is not None and item.group_id not in group_ids else item
            for item in batch
        )
        imported = Schedule(items=batch, groups=group_list, next_group_seq=len(group_list) + 1)
        logger.info("Imported %d items and %d groups", len(batch), len(group_list))
        return self._commit(Schedule(), imported, STRUCTURAL_STEPS)

    def _commit(
        self,
        before: Schedule,
        after: Schedule,
        steps: tuple[NormalizeStep, ...] = (),
    ) -> CommandResult:
        if steps:
            after = normalize(after, steps)
        check_consistency(after)
        warnings = tuple(detect_conflicts(after.items))
        if warnings:
            logger.debug("%d predecessor warning(s) after command", len(warnings))
        return CommandResult(schedule=after, warnings=warnings, changed=after != before)


def _clean_name(name: str) -> str:
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise CommandValidationError("Item name must not be empty")
    return cleaned


def _check_payload(payload: dict[str, Any]) -> None:
    extras = sorted(set(payload) - _PAYLOAD_FIELDS)
    if extras:
        raise CommandValidationError(f"Unknown item fields {extras}")


def _check_bounds(item: Item) -> None:
    if item.start > item.end:
        raise CommandValidationError(f"Item {item.id} start {item.start} is after end {item.end}")


def _check_predecessor(item: Item) -> None:
    if item.predecessor_id == item.id:
        raise CommandValidationError(f"Item {item.id} cannot be its own predecessor")
