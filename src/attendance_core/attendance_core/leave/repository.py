from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import LeaveRecord


class LeaveRepository(Protocol):
    def list_for_employee(self, employee_id: int, *, start_date: date, end_date: date) -> Sequence[LeaveRecord]:
        """Leave records of any status overlapping [start_date, end_date]."""
        raise NotImplementedError


def find_approved_leave(leaves: LeaveRepository, employee_id: int, work_date: date) -> Optional[LeaveRecord]:
    for record in leaves.list_for_employee(employee_id, start_date=work_date, end_date=work_date):
        if record.is_approved and record.covers(work_date):
            return record
    return None
