import datetime as dt

from timeline_engine.__main__ import main
from timeline_engine.parse_project import load_project

PROJECT_YAML = """
project:
  name: Outage
items:
  - id: 1
    name: Shutdown
    start: 2024-01-01
    end: 2024-01-05
  - id: 2
    name: Inspection
    start: 2024-01-03
    end: 2024-01-08
    predecessor: 1
"""


def _project(tmp_path):
    path = tmp_path / "project.yaml"
    path.write_text(PROJECT_YAML, encoding="utf-8")
    return path


def test_warnings_command_lists_conflicts(tmp_path, capsys):
    assert main([str(_project(tmp_path)), "warnings"]) == 0

    out = capsys.readouterr().out
    assert "item 2" in out
    assert '"Inspection"' in out


def test_move_command_writes_updated_project(tmp_path, capsys):
    out_path = tmp_path / "out" / "moved.yaml"

    code = main([str(_project(tmp_path)), "--out", str(out_path), "move", "2", "2024-01-05"])

    assert code == 0
    moved = load_project(str(out_path)).schedule.find_item(2)
    assert (moved.start, moved.end) == (dt.date(2024, 1, 5), dt.date(2024, 1, 10))
    assert capsys.readouterr().err == ""


def test_layout_command_prints_weeks(tmp_path, capsys):
    assert main([str(_project(tmp_path)), "layout", "--start", "2024-01-01", "--end", "2024-01-07"]) == 0

    out = capsys.readouterr().out
    assert "Week 2023-12-31 .. 2024-01-06 (2 lane(s))" in out
    assert "lane 1" in out


def test_invalid_command_returns_validation_exit_code(tmp_path, capsys):
    assert main([str(_project(tmp_path)), "group", "1"]) == 2
    assert "at least two items" in capsys.readouterr().err


def test_missing_project_file(tmp_path, capsys):
    assert main([str(tmp_path / "absent.yaml"), "warnings"]) == 1
    assert "not found" in capsys.readouterr().err


def test_layout_defaults_to_project_span_and_hides_units(tmp_path, capsys):
    text = PROJECT_YAML.replace("    predecessor: 1\n", "    predecessor: 1\n    executing_unit: NDT\n")
    path = tmp_path / "units.yaml"
    path.write_text(text, encoding="utf-8")

    assert main([str(path), "layout", "--exclude-unit", "NDT"]) == 0

    out = capsys.readouterr().out
    assert "Week 2023-12-31 .. 2024-01-06 (1 lane(s))" in out
    assert "Inspection" not in out
    assert "Week 2024-01-07 .. 2024-01-13 (0 lane(s))" in out


def test_day_command_lists_items_starting_that_day(tmp_path, capsys):
    assert main([str(_project(tmp_path)), "day", "2024-01-03"]) == 0

    out = capsys.readouterr().out
    assert "2: Inspection (2024-01-03 .. 2024-01-08)" in out
    assert "Shutdown" not in out
