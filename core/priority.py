from enum import Enum
from typing import Tuple


class Priority(Enum):
    """Record priority in its fixed total order (lowest first)."""

    NONE = ""
    LOW = "L"
    MEDIUM = "M"
    HIGH = "H"

    @classmethod
    def from_string(cls, value: str) -> "Priority":
        token = (value or "").strip().upper()
        for prio in cls:
            if prio.value == token:
                return prio
        return cls.NONE

    def cycle(self, step: int = 1) -> "Priority":
        """Step through NONE -> LOW -> MEDIUM -> HIGH, wrapping both ways."""
        order = PRIORITY_ORDER
        return order[(order.index(self) + step) % len(order)]


PRIORITY_ORDER: Tuple[Priority, ...] = (Priority.NONE, Priority.LOW, Priority.MEDIUM, Priority.HIGH)
