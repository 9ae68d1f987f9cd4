"""Task records as cached from the external tool.

Records are frozen snapshots: the console never edits them in place, every
change goes through the record sink and arrives back with the next export.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from .priority import Priority
from .status import RecordStatus


@dataclass(frozen=True)
class Annotation:
    entry: Optional[datetime]
    description: str


@dataclass(frozen=True)
class Record:
    uuid: str
    id: int = 0
    description: str = ""
    status: RecordStatus = RecordStatus.PENDING
    priority: Priority = Priority.NONE
    project: str = ""
    tags: FrozenSet[str] = frozenset()
    entry: Optional[datetime] = None
    due: Optional[datetime] = None
    scheduled: Optional[datetime] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    wait: Optional[datetime] = None
    until: Optional[datetime] = None
    depends: Tuple[str, ...] = ()
    annotations: Tuple[Annotation, ...] = ()
    urgency: float = 0.0
    recur: str = ""
    udas: Mapping[str, str] = field(default_factory=dict)

    @property
    def short_uuid(self) -> str:
        return self.uuid.split("-")[0]

    @property
    def is_active(self) -> bool:
        return self.start is not None and self.status.is_open

    def date_field(self, name: str) -> Optional[datetime]:
        if name not in DATE_FIELDS:
            return None
        return getattr(self, name)


DATE_FIELDS: FrozenSet[str] = frozenset({"entry", "due", "scheduled", "start", "end", "wait", "until"})

VIRTUAL_TAGS: FrozenSet[str] = frozenset(
    {
        "ACTIVE",
        "ANNOTATED",
        "BLOCKED",
        "BLOCKING",
        "COMPLETED",
        "DELETED",
        "DUE",
        "DUETODAY",
        "OVERDUE",
        "PENDING",
        "PRIORITY",
        "PROJECT",
        "RECURRING",
        "SCHEDULED",
        "TAGGED",
        "TODAY",
        "TOMORROW",
        "UDA",
        "UNBLOCKED",
        "UNTIL",
        "WAITING",
    }
)

_STATUS_TAGS = {
    RecordStatus.PENDING: "PENDING",
    RecordStatus.WAITING: "WAITING",
    RecordStatus.COMPLETED: "COMPLETED",
    RecordStatus.DELETED: "DELETED",
}


def virtual_tags(records: Iterable[Record], now: datetime) -> Dict[str, FrozenSet[str]]:
    """Derive Taskwarrior-style virtual tags for every record of a snapshot."""
    items = list(records)
    by_uuid = {r.uuid: r for r in items}
    blocking: set = set()
    result: Dict[str, set] = {r.uuid: set() for r in items}

    for record in items:
        tags = result[record.uuid]
        blocked = False
        for dep in record.depends:
            other = by_uuid.get(dep)
            if other is None:
                continue
            if record.status.is_open and other.status.is_open:
                blocked = True
                blocking.add(other.uuid)
        tags.add("BLOCKED" if blocked else "UNBLOCKED")

    today = now.date()
    for record in items:
        tags = result[record.uuid]
        if record.uuid in blocking:
            tags.add("BLOCKING")
        status_tag = _STATUS_TAGS.get(record.status)
        if status_tag:
            tags.add(status_tag)
        if record.status == RecordStatus.RECURRING or record.recur:
            tags.add("RECURRING")
        if record.is_active:
            tags.add("ACTIVE")
        if record.scheduled is not None:
            tags.add("SCHEDULED")
        if record.until is not None:
            tags.add("UNTIL")
        if record.annotations:
            tags.add("ANNOTATED")
        if record.tags:
            tags.add("TAGGED")
        if record.udas:
            tags.add("UDA")
        if record.project:
            tags.add("PROJECT")
        if record.priority != Priority.NONE:
            tags.add("PRIORITY")
        if record.due is not None and record.status.is_open:
            due = record.due.astimezone(now.tzinfo) if now.tzinfo else record.due
            if due < now:
                tags.add("OVERDUE")
            if due.date() == today:
                tags.update({"DUE", "TODAY", "DUETODAY"})
            elif due > now:
                tags.add("DUE")
                if due.date() == today + timedelta(days=1):
                    tags.add("TOMORROW")
    return {uuid: frozenset(tags) for uuid, tags in result.items()}


__all__ = ["Annotation", "Record", "DATE_FIELDS", "VIRTUAL_TAGS", "virtual_tags"]
