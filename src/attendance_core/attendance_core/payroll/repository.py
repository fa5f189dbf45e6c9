from __future__ import annotations

from typing import Optional, Protocol

from .model import Period, SalaryCalculation


class SalaryRepository(Protocol):
    def save(self, calculation: SalaryCalculation) -> None:
        """Store the calculation, replacing any earlier one for (employee_id, period)."""
        raise NotImplementedError

    def get(self, employee_id: int, period: Period) -> Optional[SalaryCalculation]:
        raise NotImplementedError
