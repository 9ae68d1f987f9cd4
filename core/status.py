from enum import Enum


class RecordStatus(Enum):
    PENDING = ("pending", "P")
    WAITING = ("waiting", "W")
    COMPLETED = ("completed", "C")
    DELETED = ("deleted", "D")
    RECURRING = ("recurring", "R")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def short(self) -> str:
        return self.value[1]

    @property
    def is_open(self) -> bool:
        return self not in (RecordStatus.COMPLETED, RecordStatus.DELETED)

    @classmethod
    def from_string(cls, value: str) -> "RecordStatus":
        token = (value or "").strip().lower()
        for status in cls:
            if status.label == token:
                return status
        return cls.PENDING
