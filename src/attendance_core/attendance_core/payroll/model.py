from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import Severity
from ..employees.model import PayComponent


@dataclass(frozen=True, order=True)
class Period:
    year: int
    month: int

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class Recommendation:
    severity: Severity
    message: str

    def to_dict(self) -> dict:
        return {"severity": self.severity.value, "message": self.message}


@dataclass(frozen=True)
class SalaryCalculation:
    """Payroll result for one employee and one month. Recalculation supersedes it."""

    employee_id: int
    period: Period
    base_salary: float
    working_days: int
    present_days: int
    attendance_rate: float
    overtime_hours: float
    overtime_pay: float
    gross_pay: float
    net_pay: float
    mismatch_count: int = 0
    allowances: tuple[PayComponent, ...] = ()
    deductions: tuple[PayComponent, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    currency: str = "USD"
    calculated_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def total_allowances(self) -> float:
        return round(sum(c.amount for c in self.allowances), 2)

    @property
    def total_deductions(self) -> float:
        return round(sum(c.amount for c in self.deductions), 2)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "period": self.period.label,
            "base_salary": self.base_salary,
            "working_days": self.working_days,
            "present_days": self.present_days,
            "attendance_rate": self.attendance_rate,
            "overtime_hours": self.overtime_hours,
            "overtime_pay": self.overtime_pay,
            "allowances": [{"name": c.name, "amount": c.amount} for c in self.allowances],
            "deductions": [{"name": c.name, "amount": c.amount} for c in self.deductions],
            "gross_pay": self.gross_pay,
            "net_pay": self.net_pay,
            "mismatch_count": self.mismatch_count,
            "currency": self.currency,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "calculated_at": self.calculated_at.isoformat() if self.calculated_at else None,
        }


@dataclass(frozen=True)
class SalaryFailure:
    employee_id: int
    error: str
    message: str

    def to_dict(self) -> dict:
        return {"employee_id": self.employee_id, "error": self.error, "message": self.message}


@dataclass(frozen=True)
class BulkSalaryResult:
    period: Period
    working_days: int
    successes: list[SalaryCalculation] = field(default_factory=list)
    failures: list[SalaryFailure] = field(default_factory=list)
    # Employees never started because the run was cancelled.
    cancelled: list[int] = field(default_factory=list)

    @property
    def failed_employee_ids(self) -> list[int]:
        return [f.employee_id for f in self.failures]

    @property
    def summary(self) -> dict:
        return {
            "processed": len(self.successes) + len(self.failures),
            "successful": len(self.successes),
            "failed": len(self.failures),
            "cancelled": len(self.cancelled),
            "total_net_pay": round(sum(s.net_pay for s in self.successes), 2),
        }

    def to_dict(self) -> dict:
        return {
            "period": self.period.label,
            "working_days": self.working_days,
            "successes": [s.to_dict() for s in self.successes],
            "failures": [f.to_dict() for f in self.failures],
            "cancelled": list(self.cancelled),
            "summary": self.summary,
        }
