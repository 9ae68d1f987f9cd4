"""Formatted-text builders for the table, prompt and overlays."""

from typing import FrozenSet, List, Tuple

from prompt_toolkit.formatted_text import FormattedText

from util.display import display_width, pad_display, trim_display

from .keymap import View
from .keyspec import format_key_sequence
from .views import PromptKind, ViewKind

Fragments = List[Tuple[str, str]]

ROW_STYLE_ORDER: Tuple[Tuple[str, str], ...] = (
    ("ACTIVE", "class:row.active"),
    ("OVERDUE", "class:row.overdue"),
    ("DUETODAY", "class:row.due.today"),
    ("BLOCKING", "class:row.blocking"),
    ("BLOCKED", "class:row.blocked"),
    ("COMPLETED", "class:row.completed"),
    ("DELETED", "class:row.deleted"),
)


def row_style(tags: FrozenSet[str]) -> str:
    for tag, style in ROW_STYLE_ORDER:
        if tag in tags:
            return style
    return "class:text"


def visible_window(cursor: int, total: int, height: int) -> Tuple[int, int]:
    """First and one-past-last row index keeping the cursor on screen."""
    height = max(1, height)
    start = max(0, cursor - height + 1) if cursor >= height else 0
    return start, min(total, start + height)


def build_tabs_text(tui, width: int) -> FormattedText:
    parts: Fragments = []
    for kind, label in ((ViewKind.TASK_TABLE, "Tasks"), (ViewKind.CALENDAR, "Calendar")):
        style = "class:tab.active" if tui.views.main == kind else "class:tab"
        parts.append((style, f" {label} "))
        parts.append(("class:border", "│"))
    used = sum(display_width(text) for _, text in parts)
    if tui.config.report:
        label = f"report: {tui.config.report}"
        if tui.filter_text:
            label += f"  filter: {tui.filter_text}"
        label = trim_display(label, max(0, width - used - 1))
        parts.append(("class:text.dim", " " * max(1, width - used - display_width(label)) + label))
    return FormattedText(parts)


def build_table_text(tui, width: int, height: int) -> FormattedText:
    config = tui.config
    indicators = (config.selection_indicator, config.mark_indicator, config.unmark_indicator)
    gutter = max(display_width(i) for i in indicators)
    if not tui.loaded:
        return FormattedText([("class:text.dim", "Loading…")])
    view = tui.report_view(max(1, width - gutter))
    parts: Fragments = []
    if not view.rows:
        return FormattedText([("class:text.dim", "No tasks match the current report and filter.")])

    parts.append(("class:header", " " * gutter + view.header()))
    parts.append(("", "\n"))
    body = max(1, height - 1)
    tui.page_size = body
    start, end = visible_window(view.cursor, len(view.rows), body)
    for idx in range(start, end):
        row = view.rows[idx]
        marked = row.uuid in view.marked
        if idx == view.cursor:
            indicator = config.selection_indicator
        elif marked:
            indicator = config.mark_indicator
        else:
            indicator = config.unmark_indicator
        style = row_style(view.virtual.get(row.uuid, frozenset()))
        if idx == view.cursor:
            style = "class:selected"
        elif marked:
            style = f"{style} class:marked"
        parts.append(("class:marked" if marked else style, pad_display(indicator, gutter)))
        parts.append((style, view.line(idx)))
        if idx < end - 1:
            parts.append(("", "\n"))
    return FormattedText(parts)


def build_details_text(tui, width: int) -> FormattedText:
    record = tui.current_record()
    if record is None:
        return FormattedText([])
    text = tui.details.get(record.uuid)
    if not text:
        return FormattedText([("class:text.dim", "Loading details…")])
    lines = [trim_display(line, width) for line in text.splitlines()]
    return FormattedText([("class:text", "\n".join(lines))])


def build_prompt_text(tui, width: int) -> FormattedText:
    kind = tui.prompt
    if kind is None:
        return FormattedText([])
    buf = tui.editor.buffer
    if kind.is_confirmation:
        count = len(tui.confirm_targets)
        title = f"{kind.title} {count} task{'s' if count != 1 else ''}? (y/n): "
    elif kind == PromptKind.SHELL:
        title = "Shell Command: "
    else:
        title = f"{kind.title}: "
    parts: Fragments = [("class:prompt.title", title)]
    room = max(1, width - display_width(title) - 1)
    # keep the cursor visible on long lines
    start = 0
    while display_width(buf.text[start : buf.cursor]) >= room:
        start += 1
    visible = trim_display(buf.text[start:], room)
    pos = buf.cursor - start
    parts.append(("class:prompt", visible[:pos]))
    under = visible[pos : pos + 1] or " "
    parts.append(("class:prompt.cursor", under))
    parts.append(("class:prompt", visible[pos + 1 :]))
    return FormattedText(parts)


def build_error_text(tui, width: int) -> FormattedText:
    message = tui.error_message.strip() or "Unknown error"
    lines = [trim_display(line, max(1, width - 2)) for line in message.splitlines()] or [""]
    parts: Fragments = []
    for line in lines:
        parts.append(("class:error", " " + pad_display(line, max(1, width - 2)) + " "))
        parts.append(("", "\n"))
    parts.append(("class:text.dim", " Press any key to dismiss"))
    return FormattedText(parts)


def help_lines(tui) -> List[Tuple[str, str, str]]:
    """(keys, action, note) rows for the active main view."""
    view = View.TASK_TABLE if tui.views.main == ViewKind.TASK_TABLE else View.CALENDAR
    table = tui.resolver.table(view)
    by_action = {}
    for keys, action in table.items():
        by_action.setdefault(action, []).append(format_key_sequence(keys))
    conflicted = {c.winner for c in tui.resolver.conflicts if c.view == view}
    rows = []
    for action, keys in by_action.items():
        note = "conflict" if action in conflicted else ""
        rows.append((" ".join(keys), action.value, note))
    return rows


def build_help_text(tui, width: int, height: int) -> FormattedText:
    rows = help_lines(tui)
    key_width = max([display_width(r[0]) for r in rows] + [4])
    parts: Fragments = [("class:header", pad_display("Keys", key_width) + "  Action"), ("", "\n")]
    body = rows[tui.help_scroll : tui.help_scroll + max(1, height - 2)]
    for keys, action, note in body:
        parts.append(("class:help.key", pad_display(keys, key_width)))
        parts.append(("class:text", f"  {action}"))
        if note:
            parts.append(("class:help.conflict", f"  ({note})"))
        parts.append(("", "\n"))
    if tui.resolver.conflicts:
        parts.append(("class:help.conflict", f"{len(tui.resolver.conflicts)} key conflict(s) in keyconfig"))
    return FormattedText(parts)


def build_context_text(tui, width: int, height: int) -> FormattedText:
    if not tui.contexts:
        return FormattedText([("class:text.dim", "Loading contexts…")])
    name_width = max(display_width(row[0]) for row in tui.contexts)
    parts: Fragments = [
        ("class:header", pad_display("Name", name_width) + "  " + pad_display("Definition", max(1, width - name_width - 12)) + "  Active"),
        ("", "\n"),
    ]
    start, end = visible_window(tui.context_cursor, len(tui.contexts), max(1, height - 1))
    for idx in range(start, end):
        name, definition, active = tui.contexts[idx]
        line = (
            pad_display(name, name_width)
            + "  "
            + pad_display(definition, max(1, width - name_width - 12))
            + "  "
            + ("yes" if active else "no")
        )
        parts.append(("class:selected" if idx == tui.context_cursor else "class:text", line))
        parts.append(("", "\n"))
    return FormattedText(parts)


__all__ = [
    "row_style",
    "visible_window",
    "build_tabs_text",
    "build_table_text",
    "build_details_text",
    "build_prompt_text",
    "build_error_text",
    "build_help_text",
    "build_context_text",
    "help_lines",
]
