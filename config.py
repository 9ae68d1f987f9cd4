from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from application.columns import WidthPolicy

USER_CONFIG_PATH = Path.home() / ".taskconsole.yaml"
PREFIX = "uda.taskconsole."

DEFAULT_REPORT = "next"
DEFAULT_COLUMNS = (
    "id",
    "start.age",
    "entry.age",
    "depends.count",
    "priority",
    "project",
    "tags",
    "recur",
    "scheduled.countdown",
    "due.relative",
    "until.remaining",
    "description.count",
    "urgency",
)
_TRUE = {"1", "true", "yes", "on", "y"}
_FALSE = {"0", "false", "no", "off", "n", ""}


class ConfigError(ValueError):
    pass


def _data_dir() -> Path:
    base = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / "taskconsole"


def _bool(data: Mapping[str, str], key: str, default: bool) -> bool:
    raw = data.get(key)
    if raw is None:
        return default
    token = str(raw).strip().lower()
    if token in _TRUE:
        return True
    if token in _FALSE:
        return False
    raise ConfigError(f"{PREFIX}{key}: expected a boolean, got {raw!r}")


def _int(data: Mapping[str, str], key: str, default: int, minimum: int = 0) -> int:
    raw = data.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError as exc:
        raise ConfigError(f"{PREFIX}{key}: expected an integer, got {raw!r}") from exc
    return max(minimum, value)


def _float(data: Mapping[str, str], key: str, default: float) -> float:
    raw = data.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return float(str(raw).strip())
    except ValueError as exc:
        raise ConfigError(f"{PREFIX}{key}: expected a number, got {raw!r}") from exc


def _split_list(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass
class AppConfig:
    report: str = DEFAULT_REPORT
    columns: Tuple[str, ...] = DEFAULT_COLUMNS
    labels: Tuple[str, ...] = ()
    report_filter: str = ""
    column_widths: Dict[str, int] = field(default_factory=dict)
    column_policies: Dict[str, WidthPolicy] = field(default_factory=dict)
    min_column_width: int = 4
    keyconfig: Dict[str, str] = field(default_factory=dict)
    shortcuts: Dict[int, str] = field(default_factory=dict)
    background_process: str = ""
    background_period: float = 60.0
    styles: Dict[str, str] = field(default_factory=dict)
    show_info: bool = True
    hide_empty_columns: bool = True
    prompt_on_done: bool = False
    prompt_on_delete: bool = True
    prefill_task_metadata: bool = False
    jump_to_task_on_add: bool = True
    selection_indicator: str = "• "
    mark_indicator: str = "✔ "
    unmark_indicator: str = "  "
    calendar_months_per_row: int = 4
    quick_tag_name: str = "next"
    history_size: int = 500
    history_dir: Optional[Path] = None

    @classmethod
    def from_mapping(cls, flat: Mapping[str, str], report: Optional[str] = None) -> "AppConfig":
        """Typed settings from the flat map; ``report`` overrides the configured one."""
        own = {key[len(PREFIX):]: str(value) for key, value in flat.items() if key.startswith(PREFIX)}
        name = (report or own.get("report") or DEFAULT_REPORT).strip()

        def report_key(suffix: str) -> str:
            if f"report.{suffix}" in own:
                return own[f"report.{suffix}"]
            return str(flat.get(f"report.{name}.{suffix}", ""))

        columns = _split_list(report_key("columns")) or DEFAULT_COLUMNS
        labels = _split_list(report_key("labels"))

        widths: Dict[str, int] = {}
        policies: Dict[str, WidthPolicy] = {}
        keyconfig: Dict[str, str] = {}
        shortcuts: Dict[int, str] = {}
        styles: Dict[str, str] = {}
        for key, value in own.items():
            if key.startswith("column.") and key.endswith(".width"):
                widths[key[len("column."):-len(".width")]] = _int(own, key, 0)
            elif key.startswith("column.") and key.endswith(".policy"):
                policy = WidthPolicy.from_string(value)
                if policy is None:
                    raise ConfigError(f"{PREFIX}{key}: expected fixed, shrink or truncate, got {value!r}")
                policies[key[len("column."):-len(".policy")]] = policy
            elif key.startswith("keyconfig."):
                keyconfig[key[len("keyconfig."):]] = value
            elif key.startswith("shortcuts."):
                slot = key[len("shortcuts."):]
                if not slot.isdigit() or not 1 <= int(slot) <= 9:
                    raise ConfigError(f"{PREFIX}{key}: shortcut slots are 1-9")
                if value.strip():
                    shortcuts[int(slot)] = value.strip()
            elif key.startswith("style."):
                styles[key[len("style."):]] = value

        history_dir = own.get("history.dir")
        return cls(
            report=name,
            columns=columns,
            labels=labels,
            report_filter=report_key("filter").strip(),
            column_widths=widths,
            column_policies=policies,
            min_column_width=_int(own, "column.min-width", 4, minimum=1),
            keyconfig=keyconfig,
            shortcuts=shortcuts,
            background_process=own.get("background-process", "").strip(),
            background_period=_float(own, "background-process-period", 60.0),
            styles=styles,
            show_info=_bool(own, "task-report.show-info", True),
            hide_empty_columns=_bool(own, "task-report.hide-empty-columns", True),
            prompt_on_done=_bool(own, "task-report.prompt-on-done", False),
            prompt_on_delete=_bool(own, "task-report.prompt-on-delete", True),
            prefill_task_metadata=_bool(own, "task-report.prefill-task-metadata", False),
            jump_to_task_on_add=_bool(own, "task-report.jump-to-task-on-add", True),
            selection_indicator=own.get("selection.indicator", "• "),
            mark_indicator=own.get("mark.indicator", "✔ "),
            unmark_indicator=own.get("unmark.indicator", "  "),
            calendar_months_per_row=_int(own, "calendar.months-per-row", 4, minimum=1),
            quick_tag_name=own.get("quick-tag.name", "next").strip() or "next",
            history_size=_int(own, "history.size", 500, minimum=1),
            history_dir=Path(os.path.expanduser(history_dir)) if history_dir else _data_dir(),
        )


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    flat: Dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, f"{name}."))
        elif isinstance(value, bool):
            flat[name] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            sep = "," if name.endswith(("columns", "labels")) else " "
            flat[name] = sep.join(str(v) for v in value)
        elif value is None:
            flat[name] = ""
        else:
            flat[name] = str(value)
    return flat


def load_yaml_overrides(path: Optional[Path] = None) -> Dict[str, str]:
    """Flattened, unprefixed settings from the YAML file.

    A missing default file is fine; a missing explicit one is an error.
    """
    explicit = path is not None
    target = path or USER_CONFIG_PATH
    if not target.exists():
        if explicit:
            raise ConfigError(f"config file not found: {target}")
        return {}
    try:
        data = yaml.safe_load(target.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read config file {target}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"config file {target} must contain a mapping")
    return _flatten(data)


def merge_config(task_config: Mapping[str, str], overrides: Mapping[str, str]) -> Dict[str, str]:
    """Overlay YAML settings (unprefixed) on the task tool's flat config."""
    merged = dict(task_config)
    for key, value in overrides.items():
        merged[key if key.startswith(PREFIX) else f"{PREFIX}{key}"] = value
    return merged


def load_config(task_config: Mapping[str, str], path: Optional[Path] = None, report: Optional[str] = None) -> AppConfig:
    return AppConfig.from_mapping(merge_config(task_config, load_yaml_overrides(path)), report=report)


__all__ = [
    "AppConfig",
    "ConfigError",
    "USER_CONFIG_PATH",
    "PREFIX",
    "load_yaml_overrides",
    "merge_config",
    "load_config",
]
