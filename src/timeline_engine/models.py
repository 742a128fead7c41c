from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Iterable, Literal

from .dates import to_day
from .errors import CommandValidationError

ResizeSide = Literal["start", "end"]
"""Which boundary of an item a resize drags."""


@dataclass(frozen=True)
class Item:
    """Schedulable unit that renders as one bar (or one bar per week row) on the timeline."""

    id: int
    name: str
    start: date
    end: date
    predecessor_id: int | None = None
    group_id: str | None = None
    progress: int | None = None
    executing_unit: str | None = None
    notes: str | None = None
    meta: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", to_day(self.start))
        object.__setattr__(self, "end", to_day(self.end))

    @property
    def duration_days(self) -> int:
        """Calendar length of the inclusive range, at least 1."""
        return (self.end - self.start).days + 1

    def with_dates(self, start: date, end: date) -> "Item":
        return replace(self, start=start, end=end)


@dataclass(frozen=True)
class Group:
    """Ordered set of items that move together; membership order is the sequence order."""

    id: str
    task_ids: tuple[int, ...]
    color: str
    name: str | None = None

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.task_ids


@dataclass(frozen=True)
class ConflictWarning:
    """Advisory notice that an item starts before its predecessor ends."""

    item_id: int
    message: str


@dataclass(frozen=True)
class Schedule:
    """
    Immutable snapshot of one project's items and groups.

    Engines never modify a Schedule; they return a new one. Unchanged Item and
    Group objects are shared between snapshots.
    """

    items: tuple[Item, ...] = ()
    groups: tuple[Group, ...] = ()
    next_item_id: int = 1
    next_group_seq: int = 1

    def __post_init__(self) -> None:
        highest = max((item.id for item in self.items), default=0)
        if self.next_item_id <= highest:
            object.__setattr__(self, "next_item_id", highest + 1)

    def item_index(self) -> dict[int, Item]:
        return {item.id: item for item in self.items}

    def group_index(self) -> dict[str, Group]:
        return {group.id: group for group in self.groups}

    def find_item(self, item_id: int) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_group(self, group_id: str) -> Group | None:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def require_item(self, item_id: int) -> Item:
        item = self.find_item(item_id)
        if item is None:
            raise CommandValidationError(f"Item {item_id} not found")
        return item

    def require_group(self, group_id: str) -> Group:
        group = self.find_group(group_id)
        if group is None:
            raise CommandValidationError(f"Group '{group_id}' not found")
        return group

    def with_items(self, updated: Iterable[Item]) -> "Schedule":
        """Return a snapshot where items with matching ids are swapped for `updated`, order kept."""
        by_id = {item.id: item for item in updated}
        if not by_id:
            return self
        return replace(self, items=tuple(by_id.get(item.id, item) for item in self.items))

    def with_group(self, updated: Group) -> "Schedule":
        return replace(self, groups=tuple(updated if group.id == updated.id else group for group in self.groups))


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one engine command: the new snapshot plus the refreshed warnings."""

    schedule: Schedule
    warnings: tuple[ConflictWarning, ...] = ()
    changed: bool = True


@dataclass(frozen=True)
class LanePlacement:
    """
    Position of one item inside a packed window.

    `start_offset` and `span_days` are relative to the window start and already
    clipped. `is_true_start` / `is_true_end` tell whether the clipped edge is the
    item's real boundary, which is where resize handles belong.
    """

    item_id: int
    lane: int
    start_offset: int
    span_days: int
    is_true_start: bool
    is_true_end: bool


@dataclass
class WeekRow:
    """One calendar week with the lane layout of every item visible in it."""

    order: int
    week_start: date
    week_end: date
    placements: list[LanePlacement] = field(default_factory=list)
    lane_count: int = 0
