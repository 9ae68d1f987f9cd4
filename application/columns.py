"""Column specifications and their field resolvers.

Every report column is bound, when the spec is built, to one strategy from
a closed set. Rendering a row then only calls the bound resolver; nothing
dispatches on the column name per row.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from core import DATE_FIELDS, Record, VIRTUAL_TAGS


class WidthPolicy(Enum):
    FIXED = "fixed"
    SHRINK = "shrink"
    TRUNCATE = "truncate"

    @classmethod
    def from_string(cls, value: str) -> Optional["WidthPolicy"]:
        token = (value or "").strip().lower()
        for policy in cls:
            if policy.value == token:
                return policy
        return None


class Strategy(Enum):
    RAW = "raw"
    AGE = "age"
    COUNTDOWN = "countdown"
    COUNT = "count"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RenderContext:
    """Per-render inputs shared by all resolvers."""

    now: datetime
    records_by_uuid: Mapping[str, Record] = field(default_factory=dict)
    virtual: Mapping[str, FrozenSet[str]] = field(default_factory=dict)


Resolver = Callable[[Record, RenderContext], str]


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    label: str
    strategy: Strategy
    policy: WidthPolicy
    resolver: Resolver
    width: int = 0
    # description.truncated_count: the layout appends "(N)" cut characters
    count_truncated: bool = False

    def value(self, record: Record, ctx: RenderContext) -> str:
        return self.resolver(record, ctx)


def vague_duration(seconds: float) -> str:
    """Render a signed duration using its biggest applicable unit."""
    total = int(seconds)
    sign = "-" if total < 0 else ""
    total = abs(total)
    day = 60 * 60 * 24
    if total >= day * 365:
        return f"{sign}{total // (day * 365)}y"
    if total >= day * 90:
        return f"{sign}{total // (day * 30)}mo"
    if total >= day * 14:
        return f"{sign}{total // (day * 7)}w"
    if total >= day:
        return f"{sign}{total // day}d"
    if total >= 60 * 60:
        return f"{sign}{total // 3600}h"
    if total >= 60:
        return f"{sign}{total // 60}min"
    return f"{sign}{total}s"


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone().strftime("%Y-%m-%d")


def _user_tags(record: Record) -> Tuple[str, ...]:
    return tuple(sorted(t for t in record.tags if t not in VIRTUAL_TAGS))


def _raw_resolver(name: str, modifier: str) -> Resolver:
    if name == "id":
        return lambda r, ctx: str(r.id) if r.id else ""
    if name == "uuid":
        if modifier == "short":
            return lambda r, ctx: r.short_uuid
        return lambda r, ctx: r.uuid
    if name == "description":
        return lambda r, ctx: r.description
    if name == "status":
        if modifier == "short":
            return lambda r, ctx: r.status.short
        return lambda r, ctx: r.status.label
    if name == "priority":
        return lambda r, ctx: r.priority.value
    if name == "project":
        return lambda r, ctx: r.project
    if name == "tags":
        return lambda r, ctx: " ".join(_user_tags(r))
    if name == "recur":
        return lambda r, ctx: r.recur
    if name == "urgency":
        return lambda r, ctx: f"{r.urgency:.2f}"
    if name == "depends":
        def depends(r: Record, ctx: RenderContext) -> str:
            ids = []
            for dep in r.depends:
                other = ctx.records_by_uuid.get(dep)
                if other is not None and other.id:
                    ids.append(str(other.id))
            return " ".join(ids)

        return depends
    if name in DATE_FIELDS:
        return lambda r, ctx: format_date(r.date_field(name))
    return lambda r, ctx: str(r.udas.get(name, "") or "")


def _age_resolver(name: str) -> Resolver:
    def age(r: Record, ctx: RenderContext) -> str:
        value = r.date_field(name)
        if value is None:
            return ""
        return vague_duration((ctx.now - value).total_seconds())

    return age


def _countdown_resolver(name: str) -> Resolver:
    def countdown(r: Record, ctx: RenderContext) -> str:
        value = r.date_field(name)
        if value is None:
            return ""
        return vague_duration((value - ctx.now).total_seconds())

    return countdown


def _count_resolver(name: str, modifier: str) -> Resolver:
    if name == "tags":
        def tag_count(r: Record, ctx: RenderContext) -> str:
            n = len(_user_tags(r))
            return str(n) if n else ""

        return tag_count
    if name == "depends":
        return lambda r, ctx: str(len(r.depends)) if r.depends else ""
    if name == "annotations":
        return lambda r, ctx: str(len(r.annotations)) if r.annotations else ""

    def description_count(r: Record, ctx: RenderContext) -> str:
        if r.annotations:
            return f"{r.description} [{len(r.annotations)}]"
        return r.description

    if modifier == "truncated_count":
        return lambda r, ctx: r.description
    return description_count


def _empty(record: Record, ctx: RenderContext) -> str:
    return ""


_BUILTIN_FIELDS = frozenset(
    {"id", "uuid", "description", "status", "priority", "project", "tags", "recur", "urgency", "depends", "annotations"}
) | DATE_FIELDS

_RAW_MODIFIERS: Dict[str, FrozenSet[str]] = {
    "uuid": frozenset({"", "long", "short"}),
    "status": frozenset({"", "long", "short"}),
    "description": frozenset({"", "desc", "combined", "truncated"}),
    "tags": frozenset({"", "list"}),
}
_AGE_MODIFIERS = frozenset({"age"})
_COUNTDOWN_MODIFIERS = frozenset({"relative", "countdown", "remaining"})


def classify_column(column: str) -> Tuple[Strategy, str, str]:
    """Split ``field.modifier`` and pick its strategy."""
    name, _, modifier = column.partition(".")
    if name in DATE_FIELDS:
        if modifier in ("", "formatted", "iso"):
            return Strategy.RAW, name, modifier
        if modifier in _AGE_MODIFIERS:
            return Strategy.AGE, name, modifier
        if modifier in _COUNTDOWN_MODIFIERS:
            return Strategy.COUNTDOWN, name, modifier
        return Strategy.UNKNOWN, name, modifier
    if modifier == "count" or (name == "description" and modifier == "truncated_count"):
        if name in ("tags", "depends", "description", "annotations"):
            return Strategy.COUNT, name, modifier
        return Strategy.UNKNOWN, name, modifier
    if name == "annotations":
        return Strategy.UNKNOWN, name, modifier
    if name in _BUILTIN_FIELDS:
        allowed = _RAW_MODIFIERS.get(name, frozenset({""}))
        if modifier in allowed:
            return Strategy.RAW, name, modifier
        return Strategy.UNKNOWN, name, modifier
    if modifier:
        return Strategy.UNKNOWN, name, modifier
    return Strategy.RAW, name, modifier


def default_label(column: str) -> str:
    base = column.split(".")[0]
    if base == "id":
        return "ID"
    return base[:1].upper() + base[1:]


def default_policy(column: str) -> WidthPolicy:
    if column.startswith("description"):
        return WidthPolicy.TRUNCATE
    return WidthPolicy.SHRINK


def build_column_spec(
    column: str,
    label: str = "",
    policy: Optional[WidthPolicy] = None,
    width: int = 0,
) -> ColumnSpec:
    strategy, name, modifier = classify_column(column)
    if strategy == Strategy.RAW:
        resolver = _raw_resolver(name, modifier)
    elif strategy == Strategy.AGE:
        resolver = _age_resolver(name)
    elif strategy == Strategy.COUNTDOWN:
        resolver = _countdown_resolver(name)
    elif strategy == Strategy.COUNT:
        resolver = _count_resolver(name, modifier)
    else:
        resolver = _empty
    chosen = policy or default_policy(column)
    if chosen == WidthPolicy.FIXED and width <= 0:
        chosen = WidthPolicy.SHRINK
    return ColumnSpec(
        name=column,
        label=label or default_label(column),
        strategy=strategy,
        policy=chosen,
        resolver=resolver,
        width=max(0, width),
        count_truncated=(column == "description.truncated_count"),
    )


def build_column_specs(
    columns: Sequence[str],
    labels: Sequence[str] = (),
    policies: Optional[Mapping[str, WidthPolicy]] = None,
    widths: Optional[Mapping[str, int]] = None,
) -> Tuple[ColumnSpec, ...]:
    policies = policies or {}
    widths = widths or {}
    specs = []
    for idx, column in enumerate(c for c in columns if c):
        label = labels[idx] if idx < len(labels) else ""
        specs.append(build_column_spec(column, label, policies.get(column), widths.get(column, 0)))
    return tuple(specs)


__all__ = [
    "WidthPolicy",
    "Strategy",
    "RenderContext",
    "ColumnSpec",
    "vague_duration",
    "format_date",
    "classify_column",
    "default_label",
    "build_column_spec",
    "build_column_specs",
]
