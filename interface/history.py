"""Bounded, prefix-filtered history of submitted prompt lines."""

import logging
from collections import deque
from pathlib import Path
from typing import Deque, Optional, Tuple

logger = logging.getLogger("taskconsole.history")

DEFAULT_HISTORY_SIZE = 500


class CommandHistory:
    """Submitted lines, oldest first.

    Scrolling filters entries by the text left of the cursor when scrolling
    began; scrolling forward past the newest match gives back the line and
    cursor that were being edited.
    """

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE, path: Optional[Path] = None):
        self.max_size = max(1, max_size)
        self.path = path
        self.entries: Deque[str] = deque(maxlen=self.max_size)
        self._index: Optional[int] = None
        self._prefix = ""
        self._original: Tuple[str, int] = ("", 0)

    def __len__(self) -> int:
        return len(self.entries)

    def load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            lines = self.path.read_text(encoding="utf-8").split("\n")
        except OSError as exc:
            logger.warning("cannot read history %s: %s", self.path, exc)
            return
        if lines and lines[-1] == "":
            lines.pop()
        self.entries.extend(lines)

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("".join(f"{line}\n" for line in self.entries), encoding="utf-8")
        except OSError as exc:
            logger.warning("cannot write history %s: %s", self.path, exc)

    def add(self, line: str) -> None:
        """Append a submitted line; empty lines and repeats are kept as-is."""
        self.entries.append(line.replace("\n", " "))
        self.reset()
        self._save()

    def reset(self) -> None:
        self._index = None

    @property
    def browsing(self) -> bool:
        return self._index is not None

    def _matches(self, idx: int) -> bool:
        return self.entries[idx].startswith(self._prefix)

    def previous(self, text: str, cursor: int) -> Optional[Tuple[str, int]]:
        """Older matching entry as ``(text, cursor)``, or None when exhausted."""
        if self._index is None:
            self._prefix = text[:cursor]
            self._original = (text, cursor)
            start = len(self.entries)
        else:
            start = self._index
        for idx in range(start - 1, -1, -1):
            if self._matches(idx) and self.entries[idx] != text:
                self._index = idx
                entry = self.entries[idx]
                return entry, len(entry)
        return None

    def next(self, text: str) -> Optional[Tuple[str, int]]:
        """Newer matching entry, or the original line once past the newest."""
        if self._index is None:
            return None
        for idx in range(self._index + 1, len(self.entries)):
            if self._matches(idx) and self.entries[idx] != text:
                self._index = idx
                entry = self.entries[idx]
                return entry, len(entry)
        self._index = None
        return self._original


__all__ = ["CommandHistory", "DEFAULT_HISTORY_SIZE"]
