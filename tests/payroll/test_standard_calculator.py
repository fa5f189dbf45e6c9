from datetime import date

import pytest

from src.attendance_core.attendance_core.core.enums import AttendanceSource
from src.attendance_core.attendance_core.payroll.calculator.standard_calculator import StandardPayrollCalculator
from src.attendance_core.attendance_core.reconciliation.model import DailyAttendanceRecord


def _record(day: int, hours: float) -> DailyAttendanceRecord:
    return DailyAttendanceRecord(
        employee_id=1,
        work_date=date(2025, 3, day),
        is_present=hours > 0,
        hours_worked=hours,
        source=AttendanceSource.SELF_REPORT,
    )


def test_standard_calculator_counts_hours_past_eight():
    calc = StandardPayrollCalculator()
    records = [_record(3, 8.0), _record(4, 10.5), _record(5, 6.0), _record(6, 9.0)]

    assert calc.overtime_hours(records) == pytest.approx(3.5)


def test_overtime_pay_uses_hourly_rate_and_multiplier():
    calc = StandardPayrollCalculator()
    # 3200 / (20 * 8) = 20/h, x1.5 = 30/h
    assert calc.overtime_pay(2.0, base_salary=3200, working_days=20) == pytest.approx(60.0)
    assert calc.overtime_pay(0.0, base_salary=3200, working_days=20) == 0.0


def test_custom_standard_day_and_multiplier():
    calc = StandardPayrollCalculator(standard_daily_hours=7.5, overtime_multiplier=2.0)
    assert calc.overtime_hours([_record(3, 8.5)]) == pytest.approx(1.0)
    assert calc.hourly_rate(base_salary=1500, working_days=20) == pytest.approx(10.0)
