"""Per-view key binding tables built from defaults and ``keyconfig.*`` overrides."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .keyspec import Key, KeySpecError, format_key_sequence, is_nop, parse_key_specs

logger = logging.getLogger("taskconsole.keymap")

KeySeq = Tuple[Key, ...]


class Action(Enum):
    QUIT = "quit"
    FORCE_QUIT = "force-quit"
    REFRESH = "refresh"
    GO_TO_BOTTOM = "go-to-bottom"
    GO_TO_TOP = "go-to-top"
    DOWN = "down"
    UP = "up"
    PAGE_DOWN = "page-down"
    PAGE_UP = "page-up"
    DELETE = "delete"
    DONE = "done"
    START_STOP = "start-stop"
    QUICK_TAG = "quick-tag"
    SELECT = "select"
    SELECT_ALL = "select-all"
    CLEAR_MARKS = "clear-marks"
    UNDO = "undo"
    MODIFY = "modify"
    SHELL = "shell"
    LOG = "log"
    ADD = "add"
    ANNOTATE = "annotate"
    HELP = "help"
    FILTER = "filter"
    JUMP = "jump"
    ZOOM = "zoom"
    CONTEXT_MENU = "context-menu"
    NEXT_TAB = "next-tab"
    PREVIOUS_TAB = "previous-tab"
    PRIORITY_UP = "priority-up"
    PRIORITY_DOWN = "priority-down"
    SHORTCUT1 = "shortcut1"
    SHORTCUT2 = "shortcut2"
    SHORTCUT3 = "shortcut3"
    SHORTCUT4 = "shortcut4"
    SHORTCUT5 = "shortcut5"
    SHORTCUT6 = "shortcut6"
    SHORTCUT7 = "shortcut7"
    SHORTCUT8 = "shortcut8"
    SHORTCUT9 = "shortcut9"
    # modal views
    CONFIRM = "confirm"
    CANCEL = "cancel"
    # line editing
    CURSOR_LEFT = "cursor-left"
    CURSOR_RIGHT = "cursor-right"
    WORD_LEFT = "word-left"
    WORD_RIGHT = "word-right"
    LINE_START = "line-start"
    LINE_END = "line-end"
    BACKSPACE = "backspace"
    DELETE_CHAR = "delete-char"
    KILL_TO_START = "kill-to-start"
    KILL_TO_END = "kill-to-end"
    KILL_PREVIOUS_WORD = "kill-previous-word"
    KILL_NEXT_WORD = "kill-next-word"
    TRANSPOSE_WORDS = "transpose-words"
    YANK = "yank"
    HISTORY_PREVIOUS = "history-previous"
    HISTORY_NEXT = "history-next"
    COMPLETE_NEXT = "complete-next"
    COMPLETE_PREVIOUS = "complete-previous"
    NOP = "nop"

    @classmethod
    def from_string(cls, value: str) -> Optional["Action"]:
        token = (value or "").strip().lower().replace("_", "-")
        for action in cls:
            if action.value == token:
                return action
        return None

    @property
    def shortcut_slot(self) -> int:
        if self.value.startswith("shortcut"):
            return int(self.value[len("shortcut"):])
        return 0


SHORTCUT_ACTIONS = tuple(Action.from_string(f"shortcut{n}") for n in range(1, 10))


class View(Enum):
    TASK_TABLE = "task-table"
    CALENDAR = "calendar"
    CONTEXT_SWITCHER = "context-switcher"
    PROMPT = "prompt"
    HELP = "help"


@dataclass(frozen=True)
class Binding:
    action: Action
    keys: Tuple[str, ...] = ()
    # alternates that keyconfig overrides do not replace
    fixed: Tuple[str, ...] = ()


_NAVIGATION = (
    Binding(Action.DOWN, ("j",), ("<Down>",)),
    Binding(Action.UP, ("k",), ("<Up>",)),
    Binding(Action.PAGE_DOWN, ("J",), ("<PageDown>",)),
    Binding(Action.PAGE_UP, ("K",), ("<PageUp>",)),
    Binding(Action.GO_TO_TOP, ("g",), ("<Home>",)),
    Binding(Action.GO_TO_BOTTOM, ("G",), ("<End>",)),
)

_FORCE_QUIT = Binding(Action.FORCE_QUIT, (), ("<C-c>",))

DEFAULT_BINDINGS: Dict[View, Tuple[Binding, ...]] = {
    View.TASK_TABLE: (
        _FORCE_QUIT,
        Binding(Action.QUIT, ("q",)),
        Binding(Action.REFRESH, ("r",)),
        *_NAVIGATION,
        Binding(Action.DELETE, ("x",)),
        Binding(Action.DONE, ("d",)),
        Binding(Action.START_STOP, ("s",)),
        Binding(Action.QUICK_TAG, ("t",)),
        Binding(Action.SELECT, ("v",)),
        Binding(Action.SELECT_ALL, ("V",)),
        Binding(Action.CLEAR_MARKS, (), ("<Esc>",)),
        Binding(Action.UNDO, ("u",)),
        Binding(Action.MODIFY, ("m",)),
        Binding(Action.SHELL, ("!",)),
        Binding(Action.LOG, ("l",)),
        Binding(Action.ADD, ("a",)),
        Binding(Action.ANNOTATE, ("A",)),
        Binding(Action.HELP, ("?",)),
        Binding(Action.FILTER, ("/",)),
        Binding(Action.JUMP, (":",)),
        Binding(Action.ZOOM, ("z",)),
        Binding(Action.CONTEXT_MENU, ("c",)),
        Binding(Action.NEXT_TAB, ("]",)),
        Binding(Action.PREVIOUS_TAB, ("[",)),
        Binding(Action.PRIORITY_UP, ("+",)),
        Binding(Action.PRIORITY_DOWN, ("-",)),
        *(Binding(action, (str(action.shortcut_slot),)) for action in SHORTCUT_ACTIONS),
    ),
    View.CALENDAR: (
        _FORCE_QUIT,
        Binding(Action.QUIT, ("q",)),
        Binding(Action.REFRESH, ("r",)),
        *_NAVIGATION,
        Binding(Action.HELP, ("?",)),
        Binding(Action.NEXT_TAB, ("]",)),
        Binding(Action.PREVIOUS_TAB, ("[",)),
    ),
    View.CONTEXT_SWITCHER: (
        _FORCE_QUIT,
        *_NAVIGATION,
        Binding(Action.CONFIRM, (), ("<Enter>",)),
        Binding(Action.CANCEL, (), ("<Esc>",)),
        Binding(Action.CONTEXT_MENU, ("c",)),
        Binding(Action.HELP, ("?",)),
    ),
    View.HELP: (
        _FORCE_QUIT,
        Binding(Action.DOWN, ("j",), ("<Down>",)),
        Binding(Action.UP, ("k",), ("<Up>",)),
        Binding(Action.CANCEL, (), ("<Esc>",)),
        Binding(Action.HELP, ("?",)),
    ),
    View.PROMPT: (
        _FORCE_QUIT,
        Binding(Action.CONFIRM, (), ("<Enter>",)),
        Binding(Action.CANCEL, (), ("<Esc>",)),
        Binding(Action.CURSOR_LEFT, ("<C-b>",), ("<Left>",)),
        Binding(Action.CURSOR_RIGHT, ("<C-f>",), ("<Right>",)),
        Binding(Action.WORD_LEFT, ("<A-b>",), ("<C-Left>",)),
        Binding(Action.WORD_RIGHT, ("<A-f>",), ("<C-Right>",)),
        Binding(Action.LINE_START, ("<C-a>",), ("<Home>",)),
        Binding(Action.LINE_END, ("<C-e>",), ("<End>",)),
        Binding(Action.BACKSPACE, (), ("<BS>",)),
        Binding(Action.DELETE_CHAR, ("<C-d>",), ("<Del>",)),
        Binding(Action.KILL_TO_START, ("<C-u>",)),
        Binding(Action.KILL_TO_END, ("<C-k>",)),
        Binding(Action.KILL_PREVIOUS_WORD, ("<C-w>", "<A-BS>")),
        Binding(Action.KILL_NEXT_WORD, ("<A-d>",), ("<C-Del>",)),
        Binding(Action.TRANSPOSE_WORDS, ("<A-t>",)),
        Binding(Action.YANK, ("<C-y>",)),
        Binding(Action.HISTORY_PREVIOUS, (), ("<Up>",)),
        Binding(Action.HISTORY_NEXT, (), ("<Down>",)),
        Binding(Action.COMPLETE_NEXT, (), ("<Tab>",)),
        Binding(Action.COMPLETE_PREVIOUS, (), ("<BackTab>",)),
    ),
}


@dataclass(frozen=True)
class Conflict:
    view: View
    keys: KeySeq
    previous: Action
    winner: Action

    def describe(self) -> str:
        return f"{format_key_sequence(self.keys)}: {self.previous.value} overridden by {self.winner.value}"


class Resolution(Enum):
    MATCH = "match"
    PENDING = "pending"
    NONE = "none"


@dataclass(frozen=True)
class Resolved:
    kind: Resolution
    action: Optional[Action] = None


NO_BINDING = Resolved(Resolution.NONE)
PENDING = Resolved(Resolution.PENDING)


def _prefix_clash(a: KeySeq, b: KeySeq) -> bool:
    short, long_ = (a, b) if len(a) <= len(b) else (b, a)
    return len(short) < len(long_) and long_[: len(short)] == short


class KeyBindingResolver:
    """Effective binding tables, one per view.

    ``overrides`` maps action names to key specification text (the part
    after ``keyconfig.``). Malformed specs raise ``KeySpecError``.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, str]] = None,
        defaults: Optional[Mapping[View, Sequence[Binding]]] = None,
    ):
        self.defaults = dict(defaults or DEFAULT_BINDINGS)
        self.conflicts: List[Conflict] = []
        self._tables: Dict[View, Dict[KeySeq, Action]] = {}
        replaced: Dict[Action, Tuple[KeySeq, ...]] = {}
        nop_keys: Tuple[KeySeq, ...] = ()
        for name, spec in (overrides or {}).items():
            action = Action.from_string(name)
            if action is None:
                logger.warning("ignoring keyconfig for unknown action %r", name)
                continue
            parsed = parse_key_specs(spec)
            if action == Action.NOP:
                nop_keys += tuple(keys for keys in parsed if not is_nop(keys))
                continue
            if any(is_nop(keys) for keys in parsed):
                replaced[action] = ()
                logger.info("action %s unbound", action.value)
            else:
                replaced[action] = parsed
        for view, bindings in self.defaults.items():
            self._tables[view] = self._build(view, bindings, replaced, nop_keys)
        for conflict in self.conflicts:
            logger.warning("key conflict in %s view: %s", conflict.view.value, conflict.describe())

    def _build(
        self,
        view: View,
        bindings: Sequence[Binding],
        replaced: Mapping[Action, Tuple[KeySeq, ...]],
        nop_keys: Tuple[KeySeq, ...],
    ) -> Dict[KeySeq, Action]:
        table: Dict[KeySeq, Action] = {}

        def bind(keys: KeySeq, action: Action) -> None:
            if action != Action.NOP:
                for existing, previous in list(table.items()):
                    if previous == action or previous == Action.NOP:
                        continue
                    if existing == keys or _prefix_clash(existing, keys):
                        self.conflicts.append(Conflict(view, keys, previous, action))
                        if existing == keys:
                            break
            table[keys] = action

        def parse_all(specs: Sequence[str]) -> Tuple[KeySeq, ...]:
            parsed = []
            for spec in specs:
                parsed.extend(parse_key_specs(spec))
            return tuple(parsed)

        present = {b.action for b in bindings}
        for binding in bindings:
            for keys in parse_all(binding.fixed):
                bind(keys, binding.action)
            if binding.action not in replaced:
                for keys in parse_all(binding.keys):
                    bind(keys, binding.action)
        for action, sequences in replaced.items():
            if action not in present:
                continue
            for keys in sequences:
                bind(keys, action)
        # prompts keep every key for text input
        if view != View.PROMPT:
            for keys in nop_keys:
                bind(keys, Action.NOP)
        return table

    def table(self, view: View) -> Dict[KeySeq, Action]:
        return dict(self._tables.get(view, {}))

    def keys_for(self, view: View, action: Action) -> List[KeySeq]:
        return [keys for keys, bound in self._tables.get(view, {}).items() if bound == action]

    def describe_keys(self, view: View, action: Action) -> str:
        return " ".join(format_key_sequence(keys) for keys in self.keys_for(view, action))

    def resolve(self, view: View, keys: Sequence[Key]) -> Resolved:
        """Match a pressed key sequence; the shortest bound prefix wins."""
        table = self._tables.get(view, {})
        seq = tuple(keys)
        if not seq:
            return NO_BINDING
        for end in range(1, len(seq) + 1):
            action = table.get(seq[:end])
            if action is not None:
                return Resolved(Resolution.MATCH, action)
        if any(len(bound) > len(seq) and bound[: len(seq)] == seq for bound in table):
            return PENDING
        return NO_BINDING


__all__ = [
    "Action",
    "View",
    "Binding",
    "Conflict",
    "Resolution",
    "Resolved",
    "KeyBindingResolver",
    "DEFAULT_BINDINGS",
    "SHORTCUT_ACTIONS",
    "KeySpecError",
]
