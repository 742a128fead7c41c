from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field, replace
from typing import IO, Any

import yaml

from .errors import CommandValidationError, ProjectFileError
from .models import Group, Item, Schedule
from .scheduling import ScheduleEngine


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like items[0].start."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


@dataclass
class ProjectDocument:
    """A project file: display name, free-form meta and the item/group snapshot."""

    name: str
    schedule: Schedule = field(default_factory=Schedule)
    meta: dict[str, Any] | None = None
    start: _dt.date | None = None
    end: _dt.date | None = None

    def date_range(self) -> tuple[_dt.date, _dt.date] | None:
        """Calendar range to show: the project bounds, else the span of its items."""
        items = self.schedule.items
        start = self.start or (min(item.start for item in items) if items else None)
        end = self.end or (max(item.end for item in items) if items else None)
        if start is None or end is None:
            return None
        return start, max(start, end)


_ITEM_KEYS = {
    "id",
    "name",
    "start",
    "end",
    "predecessor",
    "group",
    "progress",
    "executing_unit",
    "notes",
    "meta",
}
_GROUP_KEYS = {"id", "name", "color", "task_ids"}


def load_project(path: str, engine: ScheduleEngine | None = None) -> ProjectDocument:
    """
    Load a project from a YAML file at the given path.

    The items and groups are handed to the engine as an import batch, so
    references that do not resolve inside the file are dropped and groups
    with fewer than two members are dissolved.
    """

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_project(raw, engine)


def parse_project(data: Any, engine: ScheduleEngine | None = None) -> ProjectDocument:
    path = _Path()
    if not isinstance(data, dict):
        raise ProjectFileError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"project", "items", "groups"}, path)

    project_raw = data.get("project")
    if not isinstance(project_raw, dict):
        raise ProjectFileError(f"{path}: missing required mapping 'project'")
    _assert_allowed_keys(project_raw, {"name", "meta", "next_item_id", "start", "end"}, path.child("project"))
    name = _require_str(project_raw, "name", path.child("project"))
    meta = _parse_meta(project_raw.get("meta"), path.child("project.meta"))
    next_item_id = project_raw.get("next_item_id", 1)
    if not isinstance(next_item_id, int) or isinstance(next_item_id, bool):
        raise ProjectFileError(f"{path.child('project.next_item_id')}: expected integer")
    bounds = {
        key: _parse_date(project_raw[key], path.child(f"project.{key}"))
        for key in ("start", "end")
        if project_raw.get(key) is not None
    }
    if "start" in bounds and "end" in bounds and bounds["end"] < bounds["start"]:
        raise ProjectFileError(f"{path.child('project')}: end {bounds['end']} precedes start {bounds['start']}")

    items_raw = _optional_list(data, "items", path)
    ids: set[int] = set()
    items = [_parse_item(item_raw, path.child(f"items[{idx}]"), ids) for idx, item_raw in enumerate(items_raw)]

    groups_raw = _optional_list(data, "groups", path)
    group_ids: set[str] = set()
    groups = [
        _parse_group(group_raw, path.child(f"groups[{idx}]"), group_ids) for idx, group_raw in enumerate(groups_raw)
    ]

    engine = engine or ScheduleEngine()
    try:
        result = engine.replace_items(items, groups)
    except CommandValidationError as exc:  # pragma: no cover - duplicates are caught above
        raise ProjectFileError(f"{path}: {exc}") from exc
    schedule = result.schedule
    if next_item_id > schedule.next_item_id:
        schedule = replace(schedule, next_item_id=next_item_id)
    return ProjectDocument(name=name, schedule=schedule, meta=meta, start=bounds.get("start"), end=bounds.get("end"))


def _parse_item(data: Any, path: _Path, ids: set[int]) -> Item:
    if not isinstance(data, dict):
        raise ProjectFileError(f"{path}: expected mapping for item")
    _assert_allowed_keys(data, _ITEM_KEYS, path)

    item_id = _require_int(data, "id", path)
    if item_id in ids:
        raise ProjectFileError(f"{path.child('id')}: duplicate item id {item_id}")
    ids.add(item_id)

    name = _require_str(data, "name", path).strip()
    start = _parse_date(_require_value(data, "start", path), path.child("start"))
    end = _parse_date(data["end"], path.child("end")) if data.get("end") is not None else start
    if end < start:
        raise ProjectFileError(f"{path}: end {end} precedes start {start}")

    predecessor = data.get("predecessor")
    if predecessor is not None and (not isinstance(predecessor, int) or isinstance(predecessor, bool)):
        raise ProjectFileError(f"{path.child('predecessor')}: expected integer item id")

    group = data.get("group")
    if group is not None and not isinstance(group, str):
        raise ProjectFileError(f"{path.child('group')}: expected group id string")

    progress = data.get("progress")
    if progress is not None and (not isinstance(progress, int) or isinstance(progress, bool)):
        raise ProjectFileError(f"{path.child('progress')}: expected integer")

    return Item(
        id=item_id,
        name=name,
        start=start,
        end=end,
        predecessor_id=predecessor,
        group_id=group,
        progress=progress,
        executing_unit=_optional_str(data, "executing_unit", path),
        notes=_optional_str(data, "notes", path),
        meta=_parse_meta(data.get("meta"), path.child("meta")),
    )


def _parse_group(data: Any, path: _Path, ids: set[str]) -> Group:
    if not isinstance(data, dict):
        raise ProjectFileError(f"{path}: expected mapping for group")
    _assert_allowed_keys(data, _GROUP_KEYS, path)

    group_id = _require_str(data, "id", path)
    if group_id in ids:
        raise ProjectFileError(f"{path.child('id')}: duplicate group id '{group_id}'")
    ids.add(group_id)

    task_ids_raw = _require_value(data, "task_ids", path)
    if not isinstance(task_ids_raw, list):
        raise ProjectFileError(f"{path.child('task_ids')}: expected list of item ids")
    task_ids: list[int] = []
    for idx, task_id in enumerate(task_ids_raw):
        if not isinstance(task_id, int) or isinstance(task_id, bool):
            raise ProjectFileError(f"{path.child(f'task_ids[{idx}]')}: expected integer item id")
        task_ids.append(task_id)

    color = data.get("color", "")
    if not isinstance(color, str):
        raise ProjectFileError(f"{path.child('color')}: expected string")

    return Group(
        id=group_id,
        task_ids=tuple(task_ids),
        color=color,
        name=_optional_str(data, "name", path),
    )


def dump_project(document: ProjectDocument) -> dict[str, Any]:
    """Convert a ProjectDocument back into the YAML mapping load_project reads."""

    project: dict[str, Any] = {"name": document.name, "next_item_id": document.schedule.next_item_id}
    if document.start is not None:
        project["start"] = document.start.isoformat()
    if document.end is not None:
        project["end"] = document.end.isoformat()
    if document.meta is not None:
        project["meta"] = document.meta

    items = []
    for item in document.schedule.items:
        entry: dict[str, Any] = {
            "id": item.id,
            "name": item.name,
            "start": item.start.isoformat(),
            "end": item.end.isoformat(),
        }
        optional = {
            "predecessor": item.predecessor_id,
            "group": item.group_id,
            "progress": item.progress,
            "executing_unit": item.executing_unit,
            "notes": item.notes,
            "meta": item.meta,
        }
        entry.update({key: value for key, value in optional.items() if value is not None})
        items.append(entry)

    groups = []
    for group in document.schedule.groups:
        entry = {"id": group.id, "color": group.color, "task_ids": list(group.task_ids)}
        if group.name is not None:
            entry["name"] = group.name
        groups.append(entry)

    return {"project": project, "items": items, "groups": groups}


def write_project(document: ProjectDocument, stream: IO[str]) -> None:
    yaml.safe_dump(dump_project(document), stream, sort_keys=False, allow_unicode=True)


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise ProjectFileError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise ProjectFileError(f"{path.child(key)}: expected non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ProjectFileError(f"{path.child(key)}: expected string")
    return value


def _require_int(data: dict[str, Any], key: str, path: _Path) -> int:
    value = _require_value(data, key, path)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ProjectFileError(f"{path.child(key)}: expected integer")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise ProjectFileError(f"{path}: missing required field '{key}'")
    return data[key]


def _optional_list(data: dict[str, Any], key: str, path: _Path) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProjectFileError(f"{path.child(key)}: expected list")
    return value


def _parse_date(value: Any, path: _Path) -> _dt.date:
    # PyYAML already turns unquoted YYYY-MM-DD scalars into dates.
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise ProjectFileError(f"{path}: expected YYYY-MM-DD date")
    try:
        return _dt.date.fromisoformat(value)
    except ValueError as exc:
        raise ProjectFileError(f"{path}: expected YYYY-MM-DD date") from exc


def _parse_meta(value: Any, path: _Path) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ProjectFileError(f"{path}: expected mapping for meta")
    return value
