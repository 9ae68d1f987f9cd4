"""In-place single line editing for prompts.

Offsets count codepoints of the Python string. A word is a run of
non-whitespace; deletions that remove a span overwrite the kill buffer.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .keymap import Action


@dataclass
class LineBuffer:
    text: str = ""
    cursor: int = 0
    kill: str = ""

    def __post_init__(self) -> None:
        self.cursor = max(0, min(self.cursor, len(self.text)))

    # --- positions ---------------------------------------------------------

    def _next_word_end(self, pos: int) -> int:
        text = self.text
        while pos < len(text) and text[pos].isspace():
            pos += 1
        while pos < len(text) and not text[pos].isspace():
            pos += 1
        return pos

    def _next_word_start(self, pos: int) -> int:
        text = self.text
        while pos < len(text) and not text[pos].isspace():
            pos += 1
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return pos

    def _prev_word_start(self, pos: int) -> int:
        text = self.text
        while pos > 0 and text[pos - 1].isspace():
            pos -= 1
        while pos > 0 and not text[pos - 1].isspace():
            pos -= 1
        return pos

    # --- edits -------------------------------------------------------------

    def set_text(self, text: str, cursor: Optional[int] = None) -> None:
        self.text = text
        self.cursor = len(text) if cursor is None else max(0, min(cursor, len(text)))

    def insert(self, chars: str) -> bool:
        if not chars:
            return False
        self.text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        self.cursor += len(chars)
        return True

    def _cut(self, start: int, end: int) -> bool:
        if start >= end:
            return False
        self.kill = self.text[start:end]
        self.text = self.text[:start] + self.text[end:]
        self.cursor = start
        return True

    def move_left(self) -> bool:
        if self.cursor == 0:
            return False
        self.cursor -= 1
        return True

    def move_right(self) -> bool:
        if self.cursor >= len(self.text):
            return False
        self.cursor += 1
        return True

    def move_word_left(self) -> bool:
        target = self._prev_word_start(self.cursor)
        moved = target != self.cursor
        self.cursor = target
        return moved

    def move_word_right(self) -> bool:
        target = self._next_word_start(self.cursor)
        moved = target != self.cursor
        self.cursor = target
        return moved

    def move_home(self) -> bool:
        moved = self.cursor != 0
        self.cursor = 0
        return moved

    def move_end(self) -> bool:
        moved = self.cursor != len(self.text)
        self.cursor = len(self.text)
        return moved

    def backspace(self) -> bool:
        if self.cursor == 0:
            return False
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1
        return True

    def delete_char(self) -> bool:
        if self.cursor >= len(self.text):
            return False
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]
        return True

    def kill_to_start(self) -> bool:
        return self._cut(0, self.cursor)

    def kill_to_end(self) -> bool:
        return self._cut(self.cursor, len(self.text))

    def kill_previous_word(self) -> bool:
        return self._cut(self._prev_word_start(self.cursor), self.cursor)

    def kill_next_word(self) -> bool:
        return self._cut(self.cursor, self._next_word_end(self.cursor))

    def yank(self) -> bool:
        return self.insert(self.kill)

    def transpose_words(self) -> bool:
        """Swap the word before the cursor with the word under or after it."""
        w2_end = self._next_word_end(self.cursor)
        w2_beg = self._prev_word_start(w2_end)
        w1_beg = self._prev_word_start(w2_beg)
        w1_end = self._next_word_end(w1_beg)
        if w1_beg == w2_beg or w2_beg < w1_end:
            return False
        w1 = self.text[w1_beg:w1_end]
        w2 = self.text[w2_beg:w2_end]
        self.text = self.text[:w1_beg] + w2 + self.text[w1_end:w2_beg] + w1 + self.text[w2_end:]
        self.cursor = w2_end
        return True


class LineEditor:
    """Applies editing Actions to a ``LineBuffer``."""

    def __init__(self, buffer: Optional[LineBuffer] = None):
        self.buffer = buffer or LineBuffer()
        self._ops: Dict[Action, Callable[[], bool]] = {
            Action.CURSOR_LEFT: self.buffer.move_left,
            Action.CURSOR_RIGHT: self.buffer.move_right,
            Action.WORD_LEFT: self.buffer.move_word_left,
            Action.WORD_RIGHT: self.buffer.move_word_right,
            Action.LINE_START: self.buffer.move_home,
            Action.LINE_END: self.buffer.move_end,
            Action.BACKSPACE: self.buffer.backspace,
            Action.DELETE_CHAR: self.buffer.delete_char,
            Action.KILL_TO_START: self.buffer.kill_to_start,
            Action.KILL_TO_END: self.buffer.kill_to_end,
            Action.KILL_PREVIOUS_WORD: self.buffer.kill_previous_word,
            Action.KILL_NEXT_WORD: self.buffer.kill_next_word,
            Action.TRANSPOSE_WORDS: self.buffer.transpose_words,
            Action.YANK: self.buffer.yank,
        }

    @property
    def text(self) -> str:
        return self.buffer.text

    @property
    def cursor(self) -> int:
        return self.buffer.cursor

    def handles(self, action: Action) -> bool:
        return action in self._ops

    def apply(self, action: Action) -> bool:
        op = self._ops.get(action)
        return op() if op else False

    def insert(self, chars: str) -> bool:
        return self.buffer.insert(chars)

    def reset(self, text: str = "") -> None:
        self.buffer.set_text(text)


__all__ = ["LineBuffer", "LineEditor"]
