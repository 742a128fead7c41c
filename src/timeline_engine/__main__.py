from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence, TextIO

import yaml

from .config import EngineConfig, load_config
from .errors import CommandValidationError, ProjectFileError, ScheduleConsistencyError
from .models import CommandResult, ConflictWarning, Schedule, WeekRow
from .parse_project import ProjectDocument, load_project, write_project
from .scheduling import ScheduleEngine

logger = logging.getLogger("timeline_engine")


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timeline-engine",
        description="Apply scheduling commands to a YAML project and inspect warnings and lane layouts",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("project", help="Path to project YAML")
    parser.add_argument("--config", help="Path to engine config YAML")
    parser.add_argument("--out", help="Write the updated project here instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine decisions at DEBUG level")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("warnings", help="List predecessor conflicts")

    layout = commands.add_parser("layout", help="Print week-by-week lane layout")
    layout.add_argument("--start", type=_parse_date, help="First day to show (YYYY-MM-DD); defaults to the project start")
    layout.add_argument("--end", type=_parse_date, help="Last day to show (YYYY-MM-DD); defaults to the project end")
    layout.add_argument(
        "--exclude-unit",
        action="append",
        default=[],
        metavar="UNIT",
        help="Hide items of this executing unit (repeatable)",
    )

    day = commands.add_parser("day", help="List items starting on one day")
    day.add_argument("date", type=_parse_date)

    move = commands.add_parser("move", help="Move an item (and its group) to a new start")
    move.add_argument("item", type=int)
    move.add_argument("start", type=_parse_date)

    resize = commands.add_parser("resize", help="Drag one boundary of an item")
    resize.add_argument("item", type=int)
    resize.add_argument("side", choices=["start", "end"])
    resize.add_argument("date", type=_parse_date)

    group = commands.add_parser("group", help="Group two or more ungrouped items")
    group.add_argument("items", type=int, nargs="+")
    group.add_argument("--name", help="Optional group label")

    ungroup = commands.add_parser("ungroup", help="Take an item out of its group")
    ungroup.add_argument("item", type=int)

    delete = commands.add_parser("delete", help="Delete items")
    delete.add_argument("items", type=int, nargs="+")

    interval = commands.add_parser("interval", help="Set the gap before an item inside its group")
    interval.add_argument("group")
    interval.add_argument("previous", type=int)
    interval.add_argument("item", type=int)
    interval.add_argument("days", type=int)

    reorder = commands.add_parser("reorder", help="Re-sequence a group in the given order")
    reorder.add_argument("group")
    reorder.add_argument("items", type=int, nargs="+")

    return parser


def _apply(engine: ScheduleEngine, schedule: Schedule, args: argparse.Namespace) -> CommandResult:
    if args.command == "move":
        return engine.move_item(schedule, args.item, args.start)
    if args.command == "resize":
        return engine.resize_item(schedule, args.item, args.side, args.date)
    if args.command == "group":
        return engine.create_group(schedule, args.items, name=args.name)
    if args.command == "ungroup":
        return engine.ungroup_item(schedule, args.item)
    if args.command == "delete":
        return engine.delete_items(schedule, args.items)
    if args.command == "interval":
        return engine.set_interval(schedule, args.group, args.previous, args.item, args.days)
    if args.command == "reorder":
        return engine.reorder_group(schedule, args.group, args.items)
    raise ValueError(f"unknown command {args.command!r}")  # pragma: no cover - argparse guards choices


def _print_warnings(warnings: Sequence[ConflictWarning], stream: TextIO) -> None:
    for warning in warnings:
        print(f"warning: item {warning.item_id}: {warning.message}", file=stream)


def _print_layout(rows: list[WeekRow], schedule: Schedule) -> None:
    names = {item.id: item.name for item in schedule.items}
    for row in rows:
        print(f"Week {row.week_start.isoformat()} .. {row.week_end.isoformat()} ({row.lane_count} lane(s))")
        for placement in sorted(row.placements, key=lambda p: (p.lane, p.start_offset)):
            left = "[" if placement.is_true_start else "<"
            right = "]" if placement.is_true_end else ">"
            cells = "." * placement.start_offset + "#" * placement.span_days
            print(f"  lane {placement.lane}: {cells:<7} {left}{names.get(placement.item_id, placement.item_id)}{right}")


def _write(document: ProjectDocument, out: str | None) -> None:
    if out is None:
        write_project(document, sys.stdout)
        return
    out_path = Path(out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as fh:
        write_project(document, fh)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    project_path = Path(args.project)

    try:
        config = load_config(args.config) if args.config else EngineConfig()
    except (yaml.YAMLError, ProjectFileError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        return 1

    engine = ScheduleEngine(config)

    try:
        document = load_project(str(project_path), engine)
    except (yaml.YAMLError, ProjectFileError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: project file not found: {project_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading project: {exc}", file=sys.stderr)
        return 1

    if args.command == "warnings":
        _print_warnings(engine.warnings(document.schedule), sys.stdout)
        return 0

    if args.command == "day":
        for item in engine.day_view(document.schedule, args.date):
            print(f"{item.id}: {item.name} ({item.start.isoformat()} .. {item.end.isoformat()})")
        return 0

    if args.command == "layout":
        default_range = document.date_range()
        start = args.start or (default_range[0] if default_range else None)
        end = args.end or (default_range[1] if default_range else None)
        if start is None or end is None:
            print("Error: project has no items or bounds, pass --start and --end", file=sys.stderr)
            return 2
        if end < start:
            print(f"Error: end {end} precedes start {start}", file=sys.stderr)
            return 2
        rows = engine.calendar(document.schedule, start, end, exclude_units=args.exclude_unit)
        _print_layout(rows, document.schedule)
        return 0

    try:
        result = _apply(engine, document.schedule, args)
    except CommandValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except ScheduleConsistencyError as exc:
        logger.error("Schedule became inconsistent: %s", exc)
        return 1

    if not result.changed:
        logger.info("Command %s left the schedule unchanged", args.command)
    _print_warnings(result.warnings, sys.stderr)

    try:
        _write(replace(document, schedule=result.schedule), args.out)
    except OSError as exc:
        print(f"Error: cannot write {args.out}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
