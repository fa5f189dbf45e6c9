from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional


class EventType(str, Enum):
    DAY_STARTED = "day-started"
    DAY_ENDED = "day-ended"
    DAY_AUTO_CLOSED = "day-auto-closed"
    ATTENDANCE_RECONCILED = "attendance-reconciled"
    SALARY_CALCULATED = "salary-calculated"


@dataclass(frozen=True)
class StateChangeEvent:
    type: EventType
    employee_id: int
    work_date: Optional[date]
    new_status: str
    occurred_at: datetime
    payload: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat() if self.work_date else None,
            "new_status": self.new_status,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": dict(self.payload),
        }
