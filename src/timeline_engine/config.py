from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml

from .dates import DurationMode
from .errors import ProjectFileError

DEFAULT_GROUP_COLORS: tuple[str, ...] = (
    "#f87171",
    "#fb923c",
    "#fbbf24",
    "#a3e635",
    "#4ade80",
    "#34d399",
    "#22d3ee",
    "#60a5fa",
    "#818cf8",
    "#c084fc",
)


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunables for the mutation engine.

    - single_move_duration / group_move_duration: how a moved item's length is kept.
    - reorder_gap_days: days between one item's end and the next item's start after a reorder.
    - first_weekday: first column of the calendar week (date.weekday() numbering, 6 = Sunday).
    - group_colors: palette cycled through as groups are created.
    """

    single_move_duration: DurationMode = DurationMode.CALENDAR
    group_move_duration: DurationMode = DurationMode.CALENDAR
    reorder_gap_days: int = 1
    first_weekday: int = 6
    group_colors: tuple[str, ...] = DEFAULT_GROUP_COLORS

    def color_for(self, group_count: int) -> str:
        return self.group_colors[group_count % len(self.group_colors)]


_ALLOWED_KEYS = {
    "single_move_duration",
    "group_move_duration",
    "reorder_gap_days",
    "first_weekday",
    "group_colors",
}


def load_config(path: str) -> EngineConfig:
    """Load an EngineConfig from a YAML mapping; missing keys keep their defaults."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    if raw is None:
        return EngineConfig()
    return parse_config(raw)


def parse_config(data: Any) -> EngineConfig:
    if not isinstance(data, dict):
        raise ProjectFileError("config: expected mapping at top level")

    extras = sorted(set(data.keys()) - _ALLOWED_KEYS)
    if extras:
        raise ProjectFileError(f"config: unexpected fields {extras}")

    kwargs: dict[str, Any] = {}
    for key in ("single_move_duration", "group_move_duration"):
        if key in data:
            kwargs[key] = _parse_mode(data[key], key)

    if "reorder_gap_days" in data:
        gap = data["reorder_gap_days"]
        if not isinstance(gap, int) or isinstance(gap, bool):
            raise ProjectFileError("config.reorder_gap_days: expected integer")
        kwargs["reorder_gap_days"] = gap

    if "first_weekday" in data:
        weekday = data["first_weekday"]
        if not isinstance(weekday, int) or isinstance(weekday, bool) or not 0 <= weekday <= 6:
            raise ProjectFileError("config.first_weekday: expected integer 0 (Monday) to 6 (Sunday)")
        kwargs["first_weekday"] = weekday

    if "group_colors" in data:
        colors = data["group_colors"]
        if not isinstance(colors, list) or not colors or not all(isinstance(c, str) for c in colors):
            raise ProjectFileError("config.group_colors: expected non-empty list of strings")
        kwargs["group_colors"] = tuple(colors)

    return EngineConfig(**kwargs)


def _parse_mode(value: Any, key: str) -> DurationMode:
    try:
        return DurationMode(value)
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in DurationMode)
        raise ProjectFileError(f"config.{key}: expected one of {allowed}, got {value!r}") from exc
