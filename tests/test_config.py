from pathlib import Path

import pytest

from application.columns import WidthPolicy
from config import (
    DEFAULT_COLUMNS,
    PREFIX,
    AppConfig,
    ConfigError,
    load_config,
    load_yaml_overrides,
    merge_config,
)


def test_defaults_from_empty_map():
    config = AppConfig.from_mapping({})
    assert config.report == "next"
    assert config.columns == DEFAULT_COLUMNS
    assert config.prompt_on_delete
    assert not config.prompt_on_done
    assert config.history_dir is not None


def test_report_columns_come_from_task_report_definition():
    flat = {
        "report.list.columns": "id,project,description.count",
        "report.list.labels": "ID,Proj,Desc",
        "report.list.filter": "status:pending",
        f"{PREFIX}report": "list",
    }
    config = AppConfig.from_mapping(flat)
    assert config.report == "list"
    assert config.columns == ("id", "project", "description.count")
    assert config.labels == ("ID", "Proj", "Desc")
    assert config.report_filter == "status:pending"


def test_cli_report_overrides_configured_one():
    flat = {f"{PREFIX}report": "list", "report.all.columns": "id,description"}
    assert AppConfig.from_mapping(flat, report="all").columns == ("id", "description")


def test_own_report_keys_win():
    flat = {"report.next.columns": "id,description", f"{PREFIX}report.columns": "id,urgency"}
    assert AppConfig.from_mapping(flat).columns == ("id", "urgency")


def test_typed_settings():
    flat = {
        f"{PREFIX}keyconfig.quit": "Q",
        f"{PREFIX}shortcuts.3": "notify",
        f"{PREFIX}style.header": "bold",
        f"{PREFIX}column.project.width": "8",
        f"{PREFIX}column.project.policy": "fixed",
        f"{PREFIX}column.min-width": "6",
        f"{PREFIX}task-report.prompt-on-done": "yes",
        f"{PREFIX}background-process": "task sync",
        f"{PREFIX}background-process-period": "30",
        f"{PREFIX}history.dir": "/tmp/tc-history",
    }
    config = AppConfig.from_mapping(flat)
    assert config.keyconfig == {"quit": "Q"}
    assert config.shortcuts == {3: "notify"}
    assert config.styles == {"header": "bold"}
    assert config.column_widths == {"project": 8}
    assert config.column_policies == {"project": WidthPolicy.FIXED}
    assert config.min_column_width == 6
    assert config.prompt_on_done
    assert config.background_process == "task sync"
    assert config.background_period == 30.0
    assert config.history_dir == Path("/tmp/tc-history")


@pytest.mark.parametrize(
    "key,value",
    [
        ("task-report.prompt-on-done", "maybe"),
        ("history.size", "many"),
        ("background-process-period", "soon"),
        ("column.project.policy", "squeeze"),
        ("shortcuts.12", "x"),
    ],
)
def test_invalid_values_raise(key, value):
    with pytest.raises(ConfigError):
        AppConfig.from_mapping({f"{PREFIX}{key}": value})


def test_yaml_is_flattened(tmp_path):
    path = tmp_path / "taskconsole.yaml"
    path.write_text(
        "report: list\n"
        "keyconfig:\n"
        "  quit: Q\n"
        "task-report:\n"
        "  prompt-on-done: true\n"
        "report.columns: [id, description]\n",
        encoding="utf-8",
    )
    flat = load_yaml_overrides(path)
    assert flat["report"] == "list"
    assert flat["keyconfig.quit"] == "Q"
    assert flat["task-report.prompt-on-done"] == "true"
    assert flat["report.columns"] == "id,description"


def test_yaml_overrides_task_config(tmp_path):
    path = tmp_path / "taskconsole.yaml"
    path.write_text("quick-tag:\n  name: later\n", encoding="utf-8")
    config = load_config({f"{PREFIX}quick-tag.name": "soon"}, path)
    assert config.quick_tag_name == "later"


def test_merge_prefixes_yaml_keys():
    merged = merge_config({"report.next.columns": "id"}, {"report": "next"})
    assert merged[f"{PREFIX}report"] == "next"
    assert merged["report.next.columns"] == "id"


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_yaml_overrides(tmp_path / "absent.yaml")


def test_bad_yaml_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("keyconfig: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_yaml_overrides(path)


def test_non_mapping_yaml_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_yaml_overrides(path)
