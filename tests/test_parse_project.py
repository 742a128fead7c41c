import datetime as dt
import io

import pytest
import yaml

from timeline_engine.config import EngineConfig, load_config, parse_config
from timeline_engine.dates import DurationMode
from timeline_engine.errors import ProjectFileError
from timeline_engine.parse_project import load_project, parse_project, write_project

PROJECT_YAML = """
project:
  name: Boiler overhaul
items:
  - id: 1
    name: Safety briefing
    start: 2024-01-01
    end: 2024-01-03
    executing_unit: Safety
  - id: 2
    name: Water wall inspection
    start: "2024-01-02"
    end: "2024-01-09"
    predecessor: 1
    group: crew
    progress: 25
    notes: NDT on tube rows
    meta:
      zone: B
  - id: 3
    name: Burner service
    start: 2024-01-10
    predecessor: 77
    group: crew
groups:
  - id: crew
    name: Mechanical crew
    color: "#fb923c"
    task_ids: [2, 3]
"""


def _write(tmp_path, text, name="project.yaml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_project_builds_schedule(tmp_path):
    document = load_project(str(_write(tmp_path, PROJECT_YAML)))

    schedule = document.schedule
    assert document.name == "Boiler overhaul"
    assert [item.id for item in schedule.items] == [1, 2, 3]

    inspection = schedule.find_item(2)
    assert inspection.start == dt.date(2024, 1, 2)
    assert inspection.predecessor_id == 1
    assert inspection.meta == {"zone": "B"}

    burner = schedule.find_item(3)
    assert burner.end == burner.start == dt.date(2024, 1, 10)
    assert burner.predecessor_id is None
    assert schedule.find_group("crew").task_ids == (2, 3)


def test_written_project_loads_back(tmp_path):
    document = load_project(str(_write(tmp_path, PROJECT_YAML)))
    buffer = io.StringIO()

    write_project(document, buffer)
    reloaded = parse_project(yaml.safe_load(buffer.getvalue()))

    assert reloaded.schedule == document.schedule
    assert reloaded.name == document.name


def test_next_item_id_survives_a_save(tmp_path):
    text = PROJECT_YAML.replace("  name: Boiler overhaul\n", "  name: Boiler overhaul\n  next_item_id: 10\n")

    document = load_project(str(_write(tmp_path, text)))

    assert document.schedule.next_item_id == 10


@pytest.mark.parametrize(
    "data, fragment",
    [
        ({"items": []}, "project"),
        ({"project": {"name": "P"}, "items": [{"id": 1, "start": "2024-01-01"}]}, "items[0]"),
        ({"project": {"name": "P"}, "items": [{"id": 1, "name": "A", "start": "01/02/2024"}]}, "items[0].start"),
        (
            {"project": {"name": "P"}, "items": [{"id": 1, "name": "A", "start": "2024-01-05", "end": "2024-01-01"}]},
            "precedes",
        ),
        (
            {
                "project": {"name": "P"},
                "items": [
                    {"id": 1, "name": "A", "start": "2024-01-01"},
                    {"id": 1, "name": "B", "start": "2024-01-01"},
                ],
            },
            "duplicate item id",
        ),
        ({"project": {"name": "P"}, "items": [{"id": 1, "name": "A", "start": "2024-01-01", "owner": "x"}]}, "owner"),
        ({"project": {"name": "P"}, "groups": [{"id": "g", "task_ids": "1,2"}]}, "groups[0].task_ids"),
    ],
)
def test_malformed_projects_raise_with_path(data, fragment):
    with pytest.raises(ProjectFileError) as excinfo:
        parse_project(data)

    assert fragment in str(excinfo.value)


def test_config_defaults_and_overrides(tmp_path):
    assert load_config(str(_write(tmp_path, "", "empty.yaml"))) == EngineConfig()

    config = load_config(
        str(_write(tmp_path, "group_move_duration: business\nreorder_gap_days: 0\nfirst_weekday: 0\n", "engine.yaml"))
    )

    assert config.group_move_duration is DurationMode.BUSINESS
    assert config.single_move_duration is DurationMode.CALENDAR
    assert config.reorder_gap_days == 0
    assert config.first_weekday == 0


@pytest.mark.parametrize(
    "data",
    [
        {"single_move_duration": "weekly"},
        {"reorder_gap_days": "one"},
        {"first_weekday": 7},
        {"group_colors": []},
        {"lane_height": 3},
        ["not", "a", "mapping"],
    ],
)
def test_bad_config_is_rejected(data):
    with pytest.raises(ProjectFileError):
        parse_config(data)


def test_project_bounds_round_trip_and_drive_date_range(tmp_path):
    text = PROJECT_YAML.replace(
        "  name: Boiler overhaul\n", "  name: Boiler overhaul\n  start: 2023-12-25\n  end: 2024-02-29\n"
    )
    document = load_project(str(_write(tmp_path, text)))

    assert document.date_range() == (dt.date(2023, 12, 25), dt.date(2024, 2, 29))

    buffer = io.StringIO()
    write_project(document, buffer)
    reloaded = parse_project(yaml.safe_load(buffer.getvalue()))
    assert (reloaded.start, reloaded.end) == (document.start, document.end)


def test_date_range_falls_back_to_item_span(tmp_path):
    document = load_project(str(_write(tmp_path, PROJECT_YAML)))

    assert document.date_range() == (dt.date(2024, 1, 1), dt.date(2024, 1, 10))
    assert parse_project({"project": {"name": "Empty"}}).date_range() is None


def test_inverted_project_bounds_are_rejected():
    with pytest.raises(ProjectFileError) as excinfo:
        parse_project({"project": {"name": "P", "start": "2024-02-01", "end": "2024-01-01"}})

    assert "precedes" in str(excinfo.value)
