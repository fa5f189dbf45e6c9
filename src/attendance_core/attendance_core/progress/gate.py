from __future__ import annotations

from datetime import date

from .repository import ProgressRepository


class ProgressGate:
    """Read-only precondition for ending a day: some progress was written for it."""

    def __init__(self, progress: ProgressRepository):
        self._progress = progress

    def check(self, employee_id: int, work_date: date) -> bool:
        entries = self._progress.list_for_employee_and_date(employee_id, work_date)
        return any(entry.has_content for entry in entries)
