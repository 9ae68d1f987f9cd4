"""Events merged into the single queue drained by the UI thread."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from application.background_job import JobReport
from core import Record

from .keyspec import Key


@dataclass(frozen=True)
class KeyInput:
    key: Key


@dataclass(frozen=True)
class RefreshRequested:
    reason: str = ""


@dataclass(frozen=True)
class RefreshDone:
    records: Tuple[Record, ...] = ()
    error: str = ""
    signature: int = 0


@dataclass(frozen=True)
class MutationDone:
    label: str
    output: str = ""
    error: str = ""
    # uuid or working id to move the cursor to after the next refresh
    focus_uuid: Optional[str] = None
    focus_id: int = 0
    refresh: bool = True


@dataclass(frozen=True)
class JobEvent:
    report: JobReport


@dataclass(frozen=True)
class Tick:
    signature: Optional[int] = None


@dataclass(frozen=True)
class DetailsDone:
    uuid: str
    text: str = ""


@dataclass(frozen=True)
class ContextsDone:
    rows: Tuple[Tuple[str, str, bool], ...] = field(default_factory=tuple)
    error: str = ""


__all__ = [
    "KeyInput",
    "RefreshRequested",
    "RefreshDone",
    "MutationDone",
    "JobEvent",
    "Tick",
    "DetailsDone",
    "ContextsDone",
]
