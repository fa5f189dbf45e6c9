"""
Salary calculation over reconciled daily records.

calculate() is a pure function of the employee's roster entry and that month's
DailyAttendanceRecords; calculate_bulk() fans it out over a bounded thread
pool and keeps successes and failures apart so only failures need re-running.
"""
from __future__ import annotations

import math
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

import structlog

from ..common.datetime_utils import month_bounds, weekdays_in_month
from ..common.validators import require_month, require_positive_int
from ..core.constants import (
    DEFAULT_BULK_MAX_WORKERS,
    DEFAULT_HIGH_OVERTIME_HOURS,
    DEFAULT_LOW_ATTENDANCE_RATE,
    DEFAULT_MISMATCH_HIGH_THRESHOLD,
    MAX_DAILY_HOURS,
)
from ..core.enums import Severity
from ..core.exceptions import CalculationError, DomainError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..events.model import EventType, StateChangeEvent
from ..events.publisher import EventPublisher
from ..reconciliation.model import FLAG_MISMATCH, DailyAttendanceRecord
from ..reconciliation.repository import DailyRecordRepository
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import BulkSalaryResult, Period, Recommendation, SalaryCalculation, SalaryFailure
from .repository import SalaryRepository

logger = structlog.get_logger(__name__)


class SalaryCalculator:
    def __init__(
        self,
        employees: EmployeeRepository,
        records: DailyRecordRepository,
        salaries: SalaryRepository,
        events: EventPublisher,
        *,
        calculator: Optional[PayrollCalculator] = None,
        working_days_override: Optional[Mapping[str, int]] = None,
        max_workers: int = DEFAULT_BULK_MAX_WORKERS,
        mismatch_high_threshold: int = DEFAULT_MISMATCH_HIGH_THRESHOLD,
        low_attendance_rate: float = DEFAULT_LOW_ATTENDANCE_RATE,
        high_overtime_hours: float = DEFAULT_HIGH_OVERTIME_HOURS,
    ):
        self._employees = employees
        self._records = records
        self._salaries = salaries
        self._events = events
        self._calculator = calculator or StandardPayrollCalculator()
        self._working_days_override = dict(working_days_override or {})
        self._max_workers = max(1, int(max_workers))
        self._mismatch_high_threshold = int(mismatch_high_threshold)
        self._low_attendance_rate = float(low_attendance_rate)
        self._high_overtime_hours = float(high_overtime_hours)

    def default_working_days(self, period: Period) -> int:
        override = self._working_days_override.get(period.label)
        if override:
            return int(override)
        return weekdays_in_month(period.year, period.month)

    def _resolve(self, year, month, working_days) -> tuple[Period, int]:
        y, m = require_month(year, month)
        period = Period(y, m)
        if working_days is None:
            return period, self.default_working_days(period)
        return period, require_positive_int(working_days, "working_days")

    def calculate(
        self,
        employee_id: int,
        year: int,
        month: int,
        working_days: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
    ) -> SalaryCalculation:
        period, days = self._resolve(year, month, working_days)
        employee = self._employees.get_by_id(employee_id)
        if employee is None:
            raise ValidationError(f"Employee {employee_id} does not exist")
        return self._calculate_and_store(employee, period, days, now=now)

    def calculate_bulk(
        self,
        year: int,
        month: int,
        working_days: Optional[int] = None,
        *,
        employee_ids: Optional[Iterable[int]] = None,
        cancel_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None,
    ) -> BulkSalaryResult:
        """Calculate every active employee (or just employee_ids).

        Cancellation is cooperative: calculations already running finish and
        are stored, employees not yet started are reported as cancelled.
        """
        period, days = self._resolve(year, month, working_days)
        cancel_event = cancel_event or threading.Event()

        failures: list[SalaryFailure] = []
        if employee_ids is None:
            targets: Sequence[Employee] = list(self._employees.list_active())
        else:
            targets = []
            for employee_id in sorted(set(employee_ids)):
                employee = self._employees.get_by_id(employee_id)
                if employee is None:
                    failures.append(SalaryFailure(employee_id, ValidationError.__name__, f"Employee {employee_id} does not exist"))
                else:
                    targets.append(employee)

        logger.info("bulk_salary_started", period=period.label, working_days=days, employees=len(targets))

        successes: list[SalaryCalculation] = []
        cancelled: list[int] = []
        pending = list(targets)
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="salary") as pool:
            running: dict[Future, Employee] = {}
            while pending or running:
                # Only keep max_workers in flight so cancellation leaves the rest unstarted.
                while pending and len(running) < self._max_workers and not cancel_event.is_set():
                    employee = pending.pop(0)
                    running[pool.submit(self._calculate_and_store, employee, period, days, now=now)] = employee
                if cancel_event.is_set() and pending:
                    cancelled.extend(e.employee_id for e in pending)
                    pending.clear()
                if not running:
                    break

                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for future in done:
                    employee = running.pop(future)
                    try:
                        successes.append(future.result())
                    except DomainError as exc:
                        logger.warning(
                            "salary_calculation_failed",
                            employee_id=employee.employee_id,
                            period=period.label,
                            error=exc.code,
                            message=str(exc),
                        )
                        failures.append(SalaryFailure(employee.employee_id, type(exc).__name__, str(exc)))
                    except Exception as exc:
                        logger.exception("salary_calculation_crashed", employee_id=employee.employee_id, period=period.label)
                        failures.append(SalaryFailure(employee.employee_id, type(exc).__name__, str(exc)))

        result = BulkSalaryResult(
            period=period,
            working_days=days,
            successes=sorted(successes, key=lambda s: s.employee_id),
            failures=sorted(failures, key=lambda f: f.employee_id),
            cancelled=sorted(cancelled),
        )
        logger.info("bulk_salary_finished", period=period.label, **result.summary)
        return result

    def _calculate_and_store(
        self,
        employee: Employee,
        period: Period,
        working_days: int,
        *,
        now: Optional[datetime] = None,
    ) -> SalaryCalculation:
        start, end = month_bounds(period.year, period.month)
        records = self._records.list_for_employee(employee.employee_id, start_date=start, end_date=end)
        calculation = self.compute(employee, period, working_days, records, now=now or datetime.now())
        self._salaries.save(calculation)

        logger.info(
            "salary_calculated",
            employee_id=employee.employee_id,
            period=period.label,
            net_pay=calculation.net_pay,
            attendance_rate=calculation.attendance_rate,
        )
        self._events.publish(
            StateChangeEvent(
                type=EventType.SALARY_CALCULATED,
                employee_id=employee.employee_id,
                work_date=None,
                new_status="Calculated",
                occurred_at=calculation.calculated_at,
                payload={"period": period.label, "net_pay": calculation.net_pay},
            )
        )
        return calculation

    def compute(
        self,
        employee: Employee,
        period: Period,
        working_days: int,
        records: Sequence[DailyAttendanceRecord],
        *,
        now: datetime,
    ) -> SalaryCalculation:
        if working_days <= 0:
            raise ValidationError("working_days must be greater than 0")
        base_salary = employee.base_salary
        if base_salary is None or not math.isfinite(base_salary) or base_salary < 0:
            raise CalculationError(employee.employee_id, f"Employee {employee.employee_id} has no valid base salary")
        self._check_records(employee.employee_id, period, records)

        present_days = sum(1 for r in records if r.is_present)
        attendance_rate = round(min(100.0, present_days / working_days * 100), 2)
        mismatch_count = sum(1 for r in records if r.has_flag(FLAG_MISMATCH))

        overtime_hours = self._calculator.overtime_hours(records)
        overtime_pay = self._calculator.overtime_pay(overtime_hours, base_salary=base_salary, working_days=working_days)

        allowances = employee.allowances
        deductions = employee.deductions
        gross = base_salary / working_days * present_days + overtime_pay + sum(a.amount for a in allowances)
        net = max(0.0, gross - sum(d.amount for d in deductions))

        return SalaryCalculation(
            employee_id=employee.employee_id,
            period=period,
            base_salary=round(base_salary, 2),
            working_days=working_days,
            present_days=present_days,
            attendance_rate=attendance_rate,
            overtime_hours=round(overtime_hours, 2),
            overtime_pay=round(overtime_pay, 2),
            gross_pay=round(gross, 2),
            net_pay=round(net, 2),
            mismatch_count=mismatch_count,
            allowances=allowances,
            deductions=deductions,
            recommendations=tuple(self._recommend(attendance_rate, mismatch_count, overtime_hours)),
            currency=employee.currency,
            calculated_at=now,
        )

    def _check_records(self, employee_id: int, period: Period, records: Sequence[DailyAttendanceRecord]) -> None:
        start, end = month_bounds(period.year, period.month)
        for r in records:
            hours = r.hours_worked
            if hours is None or not math.isfinite(hours) or not 0 <= hours <= MAX_DAILY_HOURS:
                raise CalculationError(employee_id, f"Attendance on {r.work_date} has invalid hours {hours!r}")
            if not start <= r.work_date <= end:
                raise CalculationError(employee_id, f"Attendance on {r.work_date} is outside {period.label}")

    def _recommend(self, attendance_rate: float, mismatch_count: int, overtime_hours: float) -> list[Recommendation]:
        out = []
        if attendance_rate < self._low_attendance_rate:
            out.append(
                Recommendation(
                    Severity.HIGH,
                    f"Attendance rate {attendance_rate:.1f}% is below {self._low_attendance_rate:.0f}%. Review attendance.",
                )
            )
        if mismatch_count > self._mismatch_high_threshold:
            out.append(
                Recommendation(
                    Severity.HIGH,
                    f"{mismatch_count} days where self-reported and punch-clock hours disagree. Audit time records.",
                )
            )
        elif mismatch_count > 0:
            out.append(
                Recommendation(
                    Severity.MEDIUM,
                    f"{mismatch_count} day(s) where self-reported and punch-clock hours disagree.",
                )
            )
        if overtime_hours > self._high_overtime_hours:
            out.append(
                Recommendation(
                    Severity.MEDIUM,
                    f"{overtime_hours:.1f} overtime hours this month. Check workload.",
                )
            )
        if not out:
            out.append(Recommendation(Severity.LOW, "No action needed."))
        return out
