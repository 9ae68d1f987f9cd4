"""Report table engine: records plus column specs to an aligned view model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from core import Record, virtual_tags
from util.display import ELLIPSIS, display_width, pad_display, trim_display, truncate_with_ellipsis

from .columns import ColumnSpec, RenderContext, Strategy, WidthPolicy
from .selection import Selection

COLUMN_GAP = 1
DEFAULT_MIN_WIDTH = 4


@dataclass(frozen=True)
class ReportRow:
    uuid: str
    cells: Tuple[str, ...]


@dataclass(frozen=True)
class ReportView:
    labels: Tuple[str, ...] = ()
    rows: Tuple[ReportRow, ...] = ()
    widths: Tuple[int, ...] = ()
    marked: FrozenSet[str] = frozenset()
    cursor: int = 0
    columns: Tuple[str, ...] = ()
    virtual: Dict[str, FrozenSet[str]] = field(default_factory=dict)

    @property
    def uuids(self) -> Tuple[str, ...]:
        return tuple(row.uuid for row in self.rows)

    def header(self) -> str:
        return (" " * COLUMN_GAP).join(
            pad_display(label, width) for label, width in zip(self.labels, self.widths)
        )

    def line(self, index: int) -> str:
        return (" " * COLUMN_GAP).join(self.rows[index].cells)


def truncate_with_count(text: str, width: int) -> str:
    """Like ellipsis truncation, followed by ``(N)`` cut characters."""
    if width <= 0:
        return ""
    if display_width(text) <= width:
        return text
    kept = trim_display(text, max(0, width - display_width(ELLIPSIS)))
    # the suffix length depends on how much is cut, settle in two passes
    for _ in range(2):
        suffix = f"({len(text) - len(kept)})"
        room = width - display_width(ELLIPSIS) - display_width(suffix)
        if room <= 0:
            return truncate_with_ellipsis(text, width)
        kept = trim_display(text, room)
    suffix = f"({len(text) - len(kept)})"
    return kept + ELLIPSIS + suffix


def _right_aligned(spec: ColumnSpec) -> bool:
    if spec.name in ("id", "urgency"):
        return True
    return spec.strategy == Strategy.COUNT and not spec.name.startswith("description")


def allocate_widths(
    specs: Sequence[ColumnSpec],
    desired: Sequence[int],
    total_width: int,
    min_width: int = DEFAULT_MIN_WIDTH,
) -> List[int]:
    """Two-pass layout: fixed columns first, the rest share what is left."""
    widths = [0] * len(specs)
    remaining = total_width - COLUMN_GAP * max(0, len(specs) - 1)
    flexible = []
    for idx, spec in enumerate(specs):
        if spec.policy == WidthPolicy.FIXED:
            widths[idx] = spec.width
            remaining -= spec.width
        else:
            flexible.append(idx)
    remaining = max(0, remaining)
    wanted = sum(desired[i] for i in flexible)
    if wanted <= remaining:
        for idx in flexible:
            widths[idx] = desired[idx]
        return widths

    for idx in flexible:
        share = remaining * desired[idx] // wanted if wanted else 0
        widths[idx] = max(min(min_width, desired[idx]), share)
    # truncating columns first, widest first
    order = sorted(
        flexible,
        key=lambda i: (specs[i].policy != WidthPolicy.TRUNCATE, -desired[i]),
    )
    # the minimum clamp may overshoot; take it back above the minimums
    overflow = sum(widths[i] for i in flexible) - remaining
    for idx in order:
        if overflow <= 0:
            break
        cut = min(overflow, widths[idx] - min(min_width, desired[idx]))
        if cut > 0:
            widths[idx] -= cut
            overflow -= cut
    leftover = remaining - sum(widths[i] for i in flexible)
    for idx in order:
        if leftover <= 0:
            break
        extra = min(leftover, desired[idx] - widths[idx])
        if extra > 0:
            widths[idx] += extra
            leftover -= extra
    return widths


def _fit(spec: ColumnSpec, text: str, width: int) -> str:
    if spec.policy == WidthPolicy.TRUNCATE:
        if spec.count_truncated:
            text = truncate_with_count(text, width)
        else:
            text = truncate_with_ellipsis(text, width)
    return pad_display(text, width, "right" if _right_aligned(spec) else "left")


class ReportTableEngine:
    def __init__(self, min_width: int = DEFAULT_MIN_WIDTH, hide_empty_columns: bool = True):
        self.min_width = max(1, min_width)
        self.hide_empty_columns = hide_empty_columns

    def compute(
        self,
        records: Sequence[Record],
        column_specs: Sequence[ColumnSpec],
        selection: Selection,
        width: int,
        now: Optional[datetime] = None,
    ) -> ReportView:
        """Project ``records`` through ``column_specs`` into a view of ``width`` cells.

        Derived fields read ``now`` on every call, nothing is cached.
        """
        now = now or datetime.now().astimezone()
        by_uuid = {r.uuid: r for r in records}
        virtual = virtual_tags(records, now)
        ctx = RenderContext(now=now, records_by_uuid=by_uuid, virtual=virtual)

        raw = [[spec.value(record, ctx) for spec in column_specs] for record in records]
        keep = list(range(len(column_specs)))
        if self.hide_empty_columns and raw:
            keep = [i for i in keep if any(row[i] for row in raw)]
        specs = [column_specs[i] for i in keep]
        values = [[row[i] for i in keep] for row in raw]

        desired = []
        for pos, spec in enumerate(specs):
            content = max((display_width(row[pos]) for row in values), default=0)
            desired.append(max(display_width(spec.label), content))
        widths = allocate_widths(specs, desired, width, self.min_width)

        rows = tuple(
            ReportRow(
                uuid=record.uuid,
                cells=tuple(_fit(spec, row[pos], widths[pos]) for pos, spec in enumerate(specs)),
            )
            for record, row in zip(records, values)
        )
        uuids = [r.uuid for r in records]
        cursor = selection.cursor
        if selection.cursor_uuid in by_uuid:
            cursor = uuids.index(selection.cursor_uuid)
        cursor = max(0, min(cursor, len(uuids) - 1)) if uuids else 0
        return ReportView(
            labels=tuple(trim_display(spec.label, w) for spec, w in zip(specs, widths)),
            rows=rows,
            widths=tuple(widths),
            marked=frozenset(u for u in selection.marked if u in by_uuid),
            cursor=cursor,
            columns=tuple(spec.name for spec in specs),
            virtual=virtual,
        )


__all__ = [
    "ReportRow",
    "ReportView",
    "ReportTableEngine",
    "allocate_widths",
    "truncate_with_count",
]
