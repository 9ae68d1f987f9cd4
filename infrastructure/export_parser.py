import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from core import Annotation, Priority, Record, RecordStatus

EXPORT_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

_BUILTIN = {
    "uuid",
    "id",
    "description",
    "status",
    "priority",
    "project",
    "tags",
    "entry",
    "due",
    "scheduled",
    "start",
    "end",
    "wait",
    "until",
    "depends",
    "annotations",
    "urgency",
    "recur",
}
# bookkeeping attributes that are not user-defined
_INTERNAL = {"modified", "mask", "imask", "parent", "rtype", "template", "last"}


class ExportParseError(ValueError):
    pass


class ExportParser:
    @staticmethod
    def parse_date(value: Any) -> Optional[datetime]:
        if not value:
            return None
        raw = str(value).strip()
        try:
            return datetime.strptime(raw, EXPORT_DATE_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def _depends(value: Any) -> Tuple[str, ...]:
        # older exports joined dependencies with commas
        if isinstance(value, str):
            return tuple(v.strip() for v in value.split(",") if v.strip())
        if isinstance(value, list):
            return tuple(str(v) for v in value if v)
        return ()

    @classmethod
    def parse_record(cls, data: Dict[str, Any]) -> Record:
        uuid = str(data.get("uuid") or "").strip()
        if not uuid:
            raise ExportParseError("record without uuid")
        annotations = tuple(
            Annotation(entry=cls.parse_date(a.get("entry")), description=str(a.get("description", "")))
            for a in data.get("annotations") or []
            if isinstance(a, dict)
        )
        udas = {
            key: str(value)
            for key, value in data.items()
            if key not in _BUILTIN and key not in _INTERNAL and value not in (None, "")
        }
        try:
            urgency = float(data.get("urgency") or 0.0)
        except (TypeError, ValueError):
            urgency = 0.0
        try:
            working_id = int(data.get("id") or 0)
        except (TypeError, ValueError):
            working_id = 0
        return Record(
            uuid=uuid,
            id=working_id,
            description=str(data.get("description", "")),
            status=RecordStatus.from_string(data.get("status", "")),
            priority=Priority.from_string(data.get("priority", "")),
            project=str(data.get("project", "") or ""),
            tags=frozenset(str(t) for t in data.get("tags") or []),
            entry=cls.parse_date(data.get("entry")),
            due=cls.parse_date(data.get("due")),
            scheduled=cls.parse_date(data.get("scheduled")),
            start=cls.parse_date(data.get("start")),
            end=cls.parse_date(data.get("end")),
            wait=cls.parse_date(data.get("wait")),
            until=cls.parse_date(data.get("until")),
            depends=cls._depends(data.get("depends")),
            annotations=annotations,
            urgency=urgency,
            recur=str(data.get("recur", "") or ""),
            udas=udas,
        )

    @classmethod
    def parse(cls, text: str) -> Tuple[Record, ...]:
        text = (text or "").strip()
        if not text:
            return ()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            # `task export` without rc.json.array prints one object per line
            try:
                payload = [json.loads(line.rstrip(",")) for line in text.splitlines() if line.strip()]
            except json.JSONDecodeError as exc:
                raise ExportParseError(f"unreadable export: {exc}") from exc
        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise ExportParseError("export is not a list of records")
        return cls.parse_records(p for p in payload if isinstance(p, dict))

    @classmethod
    def parse_records(cls, items: Iterable[Dict[str, Any]]) -> Tuple[Record, ...]:
        return tuple(cls.parse_record(item) for item in items)


__all__ = ["ExportParser", "ExportParseError", "EXPORT_DATE_FORMAT"]
