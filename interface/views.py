"""Modal view stack: a main view with prompts and overlays pushed on top."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .keymap import View


class ViewKind(Enum):
    TASK_TABLE = "task-table"
    CALENDAR = "calendar"
    CONTEXT_SWITCHER = "context-switcher"
    COMMAND_PROMPT = "command-prompt"
    HELP_OVERLAY = "help-overlay"
    ERROR = "error"


class PromptKind(Enum):
    FILTER = ("filter", "Filter Tasks")
    ADD = ("add", "Add Task")
    LOG = ("log", "Log Task")
    MODIFY = ("modify", "Modify Task")
    ANNOTATE = ("annotate", "Annotate Task")
    JUMP = ("jump", "Jump to Task")
    SHELL = ("shell", "Shell Command")
    CONFIRM_DONE = ("confirm-done", "Done")
    CONFIRM_DELETE = ("confirm-delete", "Delete")

    @property
    def key(self) -> str:
        return self.value[0]

    @property
    def title(self) -> str:
        return self.value[1]

    @property
    def is_confirmation(self) -> bool:
        return self in (PromptKind.CONFIRM_DONE, PromptKind.CONFIRM_DELETE)


MAIN_VIEWS = (ViewKind.TASK_TABLE, ViewKind.CALENDAR)

_KEYMAP_VIEW = {
    ViewKind.TASK_TABLE: View.TASK_TABLE,
    ViewKind.CALENDAR: View.CALENDAR,
    ViewKind.CONTEXT_SWITCHER: View.CONTEXT_SWITCHER,
    ViewKind.COMMAND_PROMPT: View.PROMPT,
    ViewKind.HELP_OVERLAY: View.HELP,
}


@dataclass(frozen=True)
class Frame:
    kind: ViewKind
    prompt: Optional[PromptKind] = None
    message: str = ""


class ViewStateMachine:
    def __init__(self, initial: ViewKind = ViewKind.TASK_TABLE):
        if initial not in MAIN_VIEWS:
            raise ValueError(f"{initial} is not a main view")
        self._stack: List[Frame] = [Frame(initial)]

    @property
    def current(self) -> Frame:
        return self._stack[-1]

    @property
    def kind(self) -> ViewKind:
        return self.current.kind

    @property
    def main(self) -> ViewKind:
        return self._stack[0].kind

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def in_main_view(self) -> bool:
        return len(self._stack) == 1

    def keymap_view(self) -> Optional[View]:
        return _KEYMAP_VIEW.get(self.kind)

    def push(self, kind: ViewKind, prompt: Optional[PromptKind] = None, message: str = "") -> Frame:
        if kind in MAIN_VIEWS:
            raise ValueError(f"{kind} cannot be pushed")
        if (kind == ViewKind.COMMAND_PROMPT) != (prompt is not None):
            raise ValueError("prompt kind goes with the command prompt only")
        frame = Frame(kind, prompt, message)
        self._stack.append(frame)
        return frame

    def pop(self) -> Optional[Frame]:
        if len(self._stack) == 1:
            return None
        return self._stack.pop()

    def cycle(self, step: int = 1) -> ViewKind:
        """Switch the main view; only while no modal is open."""
        if not self.in_main_view:
            return self.kind
        idx = MAIN_VIEWS.index(self.main)
        self._stack[0] = Frame(MAIN_VIEWS[(idx + step) % len(MAIN_VIEWS)])
        return self.kind

    def showing(self, kind: ViewKind) -> bool:
        return any(frame.kind == kind for frame in self._stack)


__all__ = ["ViewKind", "PromptKind", "Frame", "ViewStateMachine", "MAIN_VIEWS"]
