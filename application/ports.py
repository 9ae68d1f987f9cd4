"""Record source and sink seams between the dispatcher and the task tool."""

from typing import List, Protocol, Sequence, Tuple

from core import Priority, Record


class RecordSource(Protocol):
    def export(self, report: str, filter_text: str = "") -> Tuple[Record, ...]:
        ...

    def compute_signature(self) -> int:
        ...

    def contexts(self) -> List[Tuple[str, str, bool]]:
        ...

    def details(self, uuid: str, width: int = 80) -> str:
        ...


class RecordSink(Protocol):
    def add(self, text: str) -> str:
        ...

    def log(self, text: str) -> str:
        ...

    def modify(self, uuids: Sequence[str], text: str) -> str:
        ...

    def annotate(self, uuids: Sequence[str], text: str) -> str:
        ...

    def set_priority(self, uuids: Sequence[str], priority: Priority) -> str:
        ...

    def done(self, uuids: Sequence[str]) -> str:
        ...

    def delete(self, uuids: Sequence[str]) -> str:
        ...

    def toggle_start(self, uuids: Sequence[str], active: bool) -> str:
        ...

    def toggle_tag(self, uuids: Sequence[str], tag: str, present: bool) -> str:
        ...

    def undo(self) -> str:
        ...

    def set_context(self, name: str) -> str:
        ...

    def run_shell(self, argv: Sequence[str]) -> str:
        ...
