"""Tab completion of the token under the prompt cursor."""

from typing import Callable, List, Optional, Sequence, Tuple

from .line_editor import LineBuffer

TOKEN_DELIMITERS = " ()"

CandidateSource = Callable[[str], Sequence[str]]


def token_under_cursor(text: str, cursor: int) -> Tuple[int, str]:
    """Start offset and text of the token ending at ``cursor``."""
    start = cursor
    while start > 0 and text[start - 1] not in TOKEN_DELIMITERS:
        start -= 1
    return start, text[start:cursor]


class CompletionSession:
    """Cycles candidates for one token until the token is edited."""

    def __init__(self, source: CandidateSource):
        self.source = source
        self.candidates: List[str] = []
        self.index = -1
        self._start = -1
        self._shown: Optional[str] = None
        self.queries = 0

    @property
    def active(self) -> bool:
        return self._shown is not None

    def reset(self) -> None:
        self.candidates = []
        self.index = -1
        self._start = -1
        self._shown = None

    def _still_current(self, buffer: LineBuffer) -> bool:
        if self._shown is None:
            return False
        start, token = token_under_cursor(buffer.text, buffer.cursor)
        return start == self._start and token == self._shown

    def complete(self, buffer: LineBuffer, step: int = 1) -> bool:
        """Replace the token with the next (or previous) candidate."""
        if not self._still_current(buffer):
            start, token = token_under_cursor(buffer.text, buffer.cursor)
            self.queries += 1
            found = [c for c in self.source(token) if c.startswith(token) and c != token]
            self.reset()
            if not found:
                return False
            self.candidates = sorted(set(found))
            self._start = start
            self.index = 0 if step > 0 else len(self.candidates) - 1
        else:
            self.index = (self.index + step) % len(self.candidates)
        choice = self.candidates[self.index]
        text = buffer.text
        buffer.set_text(text[: self._start] + choice + text[buffer.cursor :], self._start + len(choice))
        self._shown = choice
        return True


__all__ = ["CompletionSession", "token_under_cursor", "TOKEN_DELIMITERS"]
