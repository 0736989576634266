from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from ..core.enums import AttendanceType


def _as_bool(value: Any) -> bool:
    # Spreadsheet rows carry booleans as "true"/"false" strings.
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: a single check-in or check-out event.

    `date` is YYYY-MM-DD and `time` is HH:MM:SS, so string order is time order.
    """

    record_id: str
    user_id: str
    date: str
    time: str
    attendance_type: AttendanceType
    synced: bool = False

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.date, self.time)

    def mark_synced(self) -> "AttendanceRecord":
        if self.synced:
            return self
        return replace(self, synced=True)

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "userId": self.user_id,
            "date": self.date,
            "time": self.time,
            "type": self.attendance_type.value,
            "synced": self.synced,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttendanceRecord":
        return cls(
            record_id=str(data["id"]),
            user_id=str(data.get("userId") or data.get("user_id")),
            date=str(data["date"]),
            time=str(data["time"]),
            attendance_type=AttendanceType(data["type"]),
            synced=_as_bool(data.get("synced", False)),
        )
