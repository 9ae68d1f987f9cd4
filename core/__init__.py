from .status import RecordStatus
from .priority import Priority, PRIORITY_ORDER
from .record import (
    Annotation,
    Record,
    DATE_FIELDS,
    VIRTUAL_TAGS,
    virtual_tags,
)

__all__ = [
    "RecordStatus",
    "Priority",
    "PRIORITY_ORDER",
    # Records
    "Annotation",
    "Record",
    "DATE_FIELDS",
    "VIRTUAL_TAGS",
    "virtual_tags",
]
