from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import DailyAttendanceRecord


class DailyRecordRepository(Protocol):
    def get(self, employee_id: int, work_date: date) -> Optional[DailyAttendanceRecord]:
        raise NotImplementedError

    def save(self, record: DailyAttendanceRecord, *, expected_version: Optional[int]) -> DailyAttendanceRecord:
        """Overwrite the record for its key.

        expected_version is the version read before computing the record
        (None when there was no record). Raises ReconciliationConflictError when
        the stored version moved on meanwhile. Returns the record with its new version.
        """
        raise NotImplementedError

    def list_for_employee(self, employee_id: int, *, start_date: date, end_date: date) -> Sequence[DailyAttendanceRecord]:
        raise NotImplementedError

    def list_for_date(self, work_date: date) -> Sequence[DailyAttendanceRecord]:
        raise NotImplementedError
