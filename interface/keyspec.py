"""Textual key specifications: ``q``, ``<C-e>``, ``<A-BS>``, ``gg``, ``<C-x>k``.

A printable character stands for itself and is case-sensitive. Anything in
angle brackets is a named key with optional ``C-``/``A-``/``M-`` modifiers;
names and modifier letters are case-insensitive, and so is a letter under
Ctrl. ``S-`` is accepted only as ``<S-Tab>``.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple


class KeySpecError(ValueError):
    """Malformed key specification."""


@dataclass(frozen=True)
class Key:
    code: str
    ctrl: bool = False
    alt: bool = False

    @property
    def is_char(self) -> bool:
        return len(self.code) == 1

    @property
    def is_text(self) -> bool:
        """Printable input a prompt should insert."""
        return self.is_char and not self.ctrl and not self.alt and self.code.isprintable()

    def __str__(self) -> str:
        return format_key(self)


NOP = "Nop"

# canonical display names
_NAMED: Dict[str, str] = {
    "esc": "Esc",
    "escape": "Esc",
    "enter": "Enter",
    "cr": "Enter",
    "return": "Enter",
    "tab": "Tab",
    "backtab": "BackTab",
    "bs": "BS",
    "backspace": "BS",
    "del": "Del",
    "delete": "Del",
    "ins": "Ins",
    "insert": "Ins",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "pageup": "PageUp",
    "pgup": "PageUp",
    "pagedown": "PageDown",
    "pgdn": "PageDown",
    "home": "Home",
    "end": "End",
    "null": "Null",
    "nop": NOP,
}
_NAMED.update({f"f{n}": f"F{n}" for n in range(1, 13)})

# named tokens that stand for a printable character
_CHAR_NAMES: Dict[str, str] = {"space": " ", "lt": "<", "gt": ">", "bslash": "\\"}
_CHAR_DISPLAY: Dict[str, str] = {" ": "Space", "<": "lt"}

_MODIFIERS = {"c": "ctrl", "a": "alt", "m": "alt", "s": "shift"}


def _parse_token(token: str, source: str) -> Key:
    rest = token
    mods = set()
    while len(rest) > 2 and rest[1] == "-" and rest[0].lower() in _MODIFIERS:
        mods.add(_MODIFIERS[rest[0].lower()])
        rest = rest[2:]
    if not rest:
        raise KeySpecError(f"empty key name in {source!r}")

    if len(rest) == 1:
        code = rest
    else:
        lowered = rest.lower()
        if lowered in _CHAR_NAMES:
            code = _CHAR_NAMES[lowered]
        elif lowered in _NAMED:
            code = _NAMED[lowered]
        else:
            raise KeySpecError(f"unknown key name <{token}> in {source!r}")

    if "shift" in mods:
        if code != "Tab" or len(mods) > 1:
            raise KeySpecError(f"S- is only valid as <S-Tab> in {source!r}")
        return Key("BackTab")
    if code == NOP and mods:
        raise KeySpecError(f"<Nop> takes no modifiers in {source!r}")
    ctrl = "ctrl" in mods
    if ctrl and len(code) == 1 and code.isalpha():
        code = code.lower()
    return Key(code, ctrl=ctrl, alt="alt" in mods)


def parse_key_spec(text: str) -> Tuple[Key, ...]:
    """Parse one specification into its key sequence."""
    if not text:
        raise KeySpecError("empty key specification")
    keys = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "<":
            close = text.find(">", i + 1)
            if close > i + 1:
                keys.append(_parse_token(text[i + 1 : close], text))
                i = close + 1
                continue
        if not ch.isprintable():
            raise KeySpecError(f"unprintable character {ch!r} in {text!r}")
        keys.append(Key(ch))
        i += 1
    return tuple(keys)


def parse_key_specs(text: str) -> Tuple[Tuple[Key, ...], ...]:
    """Parse a whitespace separated list of specifications."""
    specs = tuple(parse_key_spec(part) for part in (text or "").split())
    if not specs:
        raise KeySpecError("empty key specification")
    return specs


def format_key(key: Key) -> str:
    if key.is_char and not key.ctrl and not key.alt and key.code not in _CHAR_DISPLAY:
        return key.code
    name = _CHAR_DISPLAY.get(key.code, key.code)
    prefix = ("C-" if key.ctrl else "") + ("A-" if key.alt else "")
    return f"<{prefix}{name}>"


def format_key_sequence(keys: Iterable[Key]) -> str:
    return "".join(format_key(k) for k in keys)


def is_nop(keys: Tuple[Key, ...]) -> bool:
    return len(keys) == 1 and keys[0].code == NOP


# prompt_toolkit reports keys by these names; Enter, Tab and Backspace arrive
# as their control-character aliases
_TERMINAL_NAMES: Dict[str, Key] = {
    "escape": Key("Esc"),
    "c-m": Key("Enter"),
    "enter": Key("Enter"),
    "c-j": Key("Enter"),
    "c-i": Key("Tab"),
    "tab": Key("Tab"),
    "s-tab": Key("BackTab"),
    "c-h": Key("BS"),
    "backspace": Key("BS"),
    "delete": Key("Del"),
    "c-delete": Key("Del", ctrl=True),
    "insert": Key("Ins"),
    "up": Key("Up"),
    "down": Key("Down"),
    "left": Key("Left"),
    "right": Key("Right"),
    "c-up": Key("Up", ctrl=True),
    "c-down": Key("Down", ctrl=True),
    "c-left": Key("Left", ctrl=True),
    "c-right": Key("Right", ctrl=True),
    "pageup": Key("PageUp"),
    "pagedown": Key("PageDown"),
    "home": Key("Home"),
    "end": Key("End"),
    "c-@": Key("Null"),
    "c-space": Key("Null"),
}
_TERMINAL_NAMES.update({f"f{n}": Key(f"F{n}") for n in range(1, 13)})


def from_terminal(name: str, data: str = "", alt: bool = False) -> Optional[Key]:
    """Translate a terminal key name (and its raw data) into a ``Key``."""
    key: Optional[Key] = None
    if name in _TERMINAL_NAMES:
        key = _TERMINAL_NAMES[name]
    elif name.startswith("c-") and len(name) == 3:
        key = Key(name[2].lower(), ctrl=True)
    elif len(name) == 1:
        key = Key(name)
    elif data and len(data) == 1 and data.isprintable():
        key = Key(data)
    if key is None:
        return None
    if alt:
        key = Key(key.code, ctrl=key.ctrl, alt=True)
    return key


__all__ = [
    "Key",
    "KeySpecError",
    "NOP",
    "parse_key_spec",
    "parse_key_specs",
    "format_key",
    "format_key_sequence",
    "is_nop",
    "from_terminal",
]
