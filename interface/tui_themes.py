#!/usr/bin/env python3
"""TUI themes and styling."""

from typing import Dict, Mapping, Optional

from prompt_toolkit.styles import Style


THEMES: Dict[str, Dict[str, str]] = {
    "dark": {
        "": "#d7dfe6",
        "text": "#d7dfe6",
        "text.dim": "#97a0a9",
        "header": "#ffb347 bold underline",
        "border": "#4b525a",
        "selected": "bg:#3b3b3b #d7dfe6 bold",
        "marked": "#61afef bold",
        "row.active": "#9ad974",
        "row.overdue": "#e06c75",
        "row.due.today": "#e5c07b",
        "row.blocked": "#97a0a9",
        "row.blocking": "#c678dd",
        "row.completed": "#6d717a",
        "row.deleted": "#6d717a strike",
        "status.ok": "#9ad974 bold",
        "status.warn": "#e5c07b bold",
        "status.fail": "#e06c75 bold",
        "prompt.title": "#ffb347 bold",
        "prompt": "#e8eaec",
        "prompt.cursor": "reverse",
        "error": "bg:#5c1f24 #ffdddd bold",
        "help.key": "#61afef bold",
        "help.conflict": "#e06c75",
        "calendar.title": "#ffb347 bold",
        "calendar.today": "reverse bold",
        "calendar.due": "#e06c75 bold",
        "calendar.weekend": "#97a0a9",
        "tab": "#97a0a9",
        "tab.active": "#ffb347 bold underline",
    },
    "light": {
        "": "#2b2b2b",
        "text": "#2b2b2b",
        "text.dim": "#6a6f75",
        "header": "#a35a00 bold underline",
        "border": "#b0b5ba",
        "selected": "bg:#dcdfe3 #000000 bold",
        "marked": "#1d5fa8 bold",
        "row.active": "#2f7d1e",
        "row.overdue": "#b3242f",
        "row.due.today": "#8a6100",
        "row.blocked": "#6a6f75",
        "row.blocking": "#7a2f99",
        "row.completed": "#9aa0a6",
        "row.deleted": "#9aa0a6 strike",
        "status.ok": "#2f7d1e bold",
        "status.warn": "#8a6100 bold",
        "status.fail": "#b3242f bold",
        "prompt.title": "#a35a00 bold",
        "prompt": "#000000",
        "prompt.cursor": "reverse",
        "error": "bg:#f6d5d8 #5c1f24 bold",
        "help.key": "#1d5fa8 bold",
        "help.conflict": "#b3242f",
        "calendar.title": "#a35a00 bold",
        "calendar.today": "reverse bold",
        "calendar.due": "#b3242f bold",
        "calendar.weekend": "#6a6f75",
        "tab": "#6a6f75",
        "tab.active": "#a35a00 bold underline",
    },
}

DEFAULT_THEME = "dark"


def get_theme_palette(theme: str) -> Dict[str, str]:
    """Get theme palette, falling back to default if theme not found."""
    base = THEMES.get(theme)
    if not base:
        base = THEMES[DEFAULT_THEME]
    return dict(base)


def build_style(theme: str, overrides: Optional[Mapping[str, str]] = None) -> Style:
    """Build Style object from theme name plus configured ``style.<class>`` strings."""
    palette = get_theme_palette(theme)
    for name, value in (overrides or {}).items():
        if name == "theme":
            continue
        palette[name] = value
    return Style.from_dict(palette)


def theme_name(overrides: Optional[Mapping[str, str]]) -> str:
    return (overrides or {}).get("theme", DEFAULT_THEME)
