"""Year calendar with due dates of the current snapshot highlighted."""

import calendar
from datetime import date
from typing import Iterable, List, Set, Tuple

from prompt_toolkit.formatted_text import FormattedText

from core import Record

MONTH_WIDTH = 20
MONTH_GAP = 2


def due_dates(records: Iterable[Record]) -> Set[date]:
    return {r.due.astimezone().date() for r in records if r.due is not None and r.status.is_open}


def month_lines(year: int, month: int, today: date, due: Set[date]) -> List[List[Tuple[str, str]]]:
    """Eight fixed-height lines of fragments for one month."""
    cal = calendar.Calendar(firstweekday=calendar.MONDAY)
    title = calendar.month_name[month].center(MONTH_WIDTH)
    lines: List[List[Tuple[str, str]]] = [
        [("class:calendar.title", title)],
        [("class:text.dim", "Mo Tu We Th Fr Sa Su")],
    ]
    for week in cal.monthdatescalendar(year, month):
        frags: List[Tuple[str, str]] = []
        for idx, day in enumerate(week):
            text = f"{day.day:2d}" if day.month == month else "  "
            style = "class:text"
            if day.month == month:
                if day == today:
                    style = "class:calendar.today"
                elif day in due:
                    style = "class:calendar.due"
                elif day.weekday() >= 5:
                    style = "class:calendar.weekend"
            frags.append((style, text))
            if idx < 6:
                frags.append(("", " "))
        lines.append(frags)
    while len(lines) < 8:
        lines.append([("", " " * MONTH_WIDTH)])
    return lines


def build_calendar_text(year: int, records: Iterable[Record], width: int, months_per_row: int, today: date) -> FormattedText:
    per_row = max(1, min(months_per_row, (width + MONTH_GAP) // (MONTH_WIDTH + MONTH_GAP) or 1))
    due = due_dates(records)
    parts: List[Tuple[str, str]] = [("class:calendar.title", str(year).center(min(width, per_row * (MONTH_WIDTH + MONTH_GAP)))), ("", "\n\n")]
    for first in range(1, 13, per_row):
        months = [month_lines(year, m, today, due) for m in range(first, min(13, first + per_row))]
        for row in range(8):
            for idx, lines in enumerate(months):
                parts.extend(lines[row])
                if idx < len(months) - 1:
                    parts.append(("", " " * MONTH_GAP))
            parts.append(("", "\n"))
    return FormattedText(parts)


__all__ = ["build_calendar_text", "month_lines", "due_dates"]
