from __future__ import annotations

from typing import Iterable

from ...core.constants import DEFAULT_OVERTIME_MULTIPLIER, DEFAULT_STANDARD_DAILY_HOURS
from ...reconciliation.model import DailyAttendanceRecord
from .base import PayrollCalculator


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: hours past the standard day are overtime, paid at hourly rate x multiplier."""

    def __init__(
        self,
        *,
        standard_daily_hours: float = DEFAULT_STANDARD_DAILY_HOURS,
        overtime_multiplier: float = DEFAULT_OVERTIME_MULTIPLIER,
    ):
        self.standard_daily_hours = float(standard_daily_hours)
        self.overtime_multiplier = float(overtime_multiplier)

    def hourly_rate(self, *, base_salary: float, working_days: int) -> float:
        return base_salary / (working_days * self.standard_daily_hours)

    def overtime_hours(self, records: Iterable[DailyAttendanceRecord]) -> float:
        return sum(max(0.0, r.hours_worked - self.standard_daily_hours) for r in records)

    def overtime_pay(self, overtime_hours: float, *, base_salary: float, working_days: int) -> float:
        if overtime_hours <= 0:
            return 0.0
        return overtime_hours * self.hourly_rate(base_salary=base_salary, working_days=working_days) * self.overtime_multiplier
