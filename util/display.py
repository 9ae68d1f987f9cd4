"""Text display helpers: visible width, trimming, padding and ellipsis."""

from wcwidth import wcwidth

ELLIPSIS = "…"


def char_width(ch: str) -> int:
    w = wcwidth(ch)
    if w is None or w < 0:
        return 0
    return w


def display_width(text: str) -> int:
    """Return visual width of text accounting for wide and combining characters."""
    return sum(char_width(ch) for ch in text)


def trim_display(text: str, width: int) -> str:
    """Trim text so the visible width does not exceed ``width``."""
    acc = []
    used = 0
    for ch in text:
        w = char_width(ch)
        if used + w > width:
            break
        acc.append(ch)
        used += w
    return "".join(acc)


def pad_display(text: str, width: int, align: str = "left") -> str:
    """Trim and pad with spaces to an exact visible width."""
    trimmed = trim_display(text, width)
    gap = width - display_width(trimmed)
    if gap <= 0:
        return trimmed
    if align == "right":
        return " " * gap + trimmed
    return trimmed + " " * gap


def truncate_with_ellipsis(text: str, width: int) -> str:
    """Fit text into ``width`` cells, ending with an ellipsis when cut."""
    if width <= 0:
        return ""
    if display_width(text) <= width:
        return text
    return trim_display(text, width - char_width(ELLIPSIS)) + ELLIPSIS


__all__ = [
    "ELLIPSIS",
    "char_width",
    "display_width",
    "trim_display",
    "pad_display",
    "truncate_with_ellipsis",
]
