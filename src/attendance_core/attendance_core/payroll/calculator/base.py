from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ...reconciliation.model import DailyAttendanceRecord


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def overtime_hours(self, records: Iterable[DailyAttendanceRecord]) -> float:
        raise NotImplementedError

    @abstractmethod
    def overtime_pay(self, overtime_hours: float, *, base_salary: float, working_days: int) -> float:
        raise NotImplementedError
