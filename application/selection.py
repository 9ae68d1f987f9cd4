"""Cursor and multi-select marks over the current record snapshot."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set


@dataclass
class Selection:
    """Cursor row plus marked uuids; rows are never reordered by selection."""

    cursor: int = 0
    cursor_uuid: Optional[str] = None
    marked: Set[str] = field(default_factory=set)

    def reconcile(self, uuids: Sequence[str]) -> None:
        """Adopt a new snapshot: drop stale marks, follow the cursor uuid."""
        present = set(uuids)
        self.marked &= present
        if self.cursor_uuid in present:
            self.cursor = list(uuids).index(self.cursor_uuid)
        else:
            self.cursor = self._clamp(self.cursor, len(uuids))
        self.cursor_uuid = uuids[self.cursor] if uuids else None

    @staticmethod
    def _clamp(index: int, total: int) -> int:
        if total <= 0:
            return 0
        return max(0, min(index, total - 1))

    def _place(self, index: int, uuids: Sequence[str]) -> None:
        self.cursor = self._clamp(index, len(uuids))
        self.cursor_uuid = uuids[self.cursor] if uuids else None

    def move(self, delta: int, uuids: Sequence[str]) -> None:
        self._place(self.cursor + delta, uuids)

    def page(self, direction: int, page_size: int, uuids: Sequence[str]) -> None:
        self.move(direction * max(1, page_size), uuids)

    def top(self, uuids: Sequence[str]) -> None:
        self._place(0, uuids)

    def bottom(self, uuids: Sequence[str]) -> None:
        self._place(len(uuids) - 1, uuids)

    def jump_to(self, uuid: str, uuids: Sequence[str]) -> bool:
        if uuid not in uuids:
            return False
        self._place(list(uuids).index(uuid), uuids)
        return True

    def toggle_mark(self, uuid: Optional[str] = None) -> None:
        target = uuid or self.cursor_uuid
        if target is None:
            return
        if target in self.marked:
            self.marked.discard(target)
        else:
            self.marked.add(target)

    def toggle_all(self, visible: Iterable[str]) -> None:
        """Mark every visible row unless all already are, then unmark all."""
        rows = set(visible)
        if not rows:
            return
        if rows <= self.marked:
            self.marked -= rows
        else:
            self.marked |= rows

    def clear_marks(self) -> None:
        self.marked.clear()

    def selected_uuids(self, uuids: Sequence[str]) -> List[str]:
        """Marked uuids in row order, or the cursor row when nothing is marked."""
        if self.marked:
            return [u for u in uuids if u in self.marked]
        if self.cursor_uuid is not None and self.cursor_uuid in uuids:
            return [self.cursor_uuid]
        return []

    def copy(self) -> "Selection":
        return Selection(cursor=self.cursor, cursor_uuid=self.cursor_uuid, marked=set(self.marked))


__all__ = ["Selection"]
