from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import ProgressEntry


class ProgressRepository(Protocol):
    def list_for_employee_and_date(self, employee_id: int, work_date: date) -> Sequence[ProgressEntry]:
        raise NotImplementedError
