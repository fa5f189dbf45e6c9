from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..core.enums import LeaveStatus


@dataclass(frozen=True)
class LeaveRecord:
    """Leave as published by the leave subsystem. Read-only here."""

    leave_id: int
    employee_id: int
    start_date: date
    end_date: date
    leave_type: str
    status: LeaveStatus

    def covers(self, work_date: date) -> bool:
        return self.start_date <= work_date <= self.end_date

    @property
    def is_approved(self) -> bool:
        return self.status == LeaveStatus.APPROVED
