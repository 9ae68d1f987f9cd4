"""Status bar builder."""

import time
from typing import List, Tuple

from prompt_toolkit.formatted_text import FormattedText

from application.background_job import JobStatus
from core import RecordStatus
from util.display import display_width, trim_display

SPINNER_FRAMES: List[str] = ["⣿", "⡇", "⡏", "⡗", "⡟", "⡧", "⡯", "⡷", "⡿", "⢇", "⢏", "⢗", "⢟", "⢧", "⢯", "⢷", "⢿"]


def spinner_frame(now: float) -> str:
    return SPINNER_FRAMES[int(now * 8) % len(SPINNER_FRAMES)]


def build_status_text(tui, width: int) -> FormattedText:
    records = tui.records
    total = len(records)
    active = sum(1 for r in records if r.is_active)
    pending = sum(1 for r in records if r.status == RecordStatus.PENDING)
    marked = len(tui.selection.marked)

    parts: List[Tuple[str, str]] = []
    if tui.busy:
        parts.append(("class:status.warn", f"{spinner_frame(time.time())} "))
    position = f"{tui.selection.cursor + 1}/{total}" if total else "0/0"
    parts.append(("class:text", f"[{position}]"))
    parts.append(("class:text.dim", f"  pending {pending}  active {active}"))
    if marked:
        parts.append(("class:marked", f"  marked {marked}"))
    if tui.job_status == JobStatus.DISABLED:
        parts.append(("class:status.fail", "  job disabled"))
    message = tui.status_line()
    if message:
        used = sum(display_width(text) for _, text in parts)
        room = max(0, width - used - 2)
        parts.append(("class:status.warn", "  " + trim_display(message.replace("\n", " "), room)))
    return FormattedText(parts)


__all__ = ["build_status_text", "spinner_frame", "SPINNER_FRAMES"]
