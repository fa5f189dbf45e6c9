from __future__ import annotations

from typing import Optional

from ..core.enums import PayComponentKind, Severity
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchone, load_json
from ..employees.model import PayComponent
from .model import Period, Recommendation, SalaryCalculation
from .repository import SalaryRepository


def _components(raw, kind: PayComponentKind) -> tuple[PayComponent, ...]:
    return tuple(PayComponent(name=c["name"], amount=float(c["amount"]), kind=kind) for c in load_json(raw, []))


class MySQLSalaryRepository(SalaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def save(self, calculation: SalaryCalculation) -> None:
        c = calculation
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO salary_calculations(
                    employee_id, period_year, period_month, base_salary, working_days, present_days,
                    attendance_rate, overtime_hours, overtime_pay, allowances, deductions,
                    gross_pay, net_pay, mismatch_count, recommendations, currency, calculated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    base_salary=VALUES(base_salary), working_days=VALUES(working_days),
                    present_days=VALUES(present_days), attendance_rate=VALUES(attendance_rate),
                    overtime_hours=VALUES(overtime_hours), overtime_pay=VALUES(overtime_pay),
                    allowances=VALUES(allowances), deductions=VALUES(deductions),
                    gross_pay=VALUES(gross_pay), net_pay=VALUES(net_pay),
                    mismatch_count=VALUES(mismatch_count), recommendations=VALUES(recommendations),
                    currency=VALUES(currency), calculated_at=VALUES(calculated_at)
                """,
                (
                    c.employee_id,
                    c.period.year,
                    c.period.month,
                    c.base_salary,
                    c.working_days,
                    c.present_days,
                    c.attendance_rate,
                    c.overtime_hours,
                    c.overtime_pay,
                    dump_json([{"name": a.name, "amount": a.amount} for a in c.allowances]),
                    dump_json([{"name": d.name, "amount": d.amount} for d in c.deductions]),
                    c.gross_pay,
                    c.net_pay,
                    c.mismatch_count,
                    dump_json([r.to_dict() for r in c.recommendations]),
                    c.currency,
                    c.calculated_at,
                ),
            )

    def get(self, employee_id: int, period: Period) -> Optional[SalaryCalculation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT * FROM salary_calculations
                WHERE employee_id=%s AND period_year=%s AND period_month=%s
                """,
                (employee_id, period.year, period.month),
            )
            r = fetchone(cur)
            if not r:
                return None
            return SalaryCalculation(
                employee_id=int(r["employee_id"]),
                period=Period(int(r["period_year"]), int(r["period_month"])),
                base_salary=float(r["base_salary"]),
                working_days=int(r["working_days"]),
                present_days=int(r["present_days"]),
                attendance_rate=float(r["attendance_rate"]),
                overtime_hours=float(r["overtime_hours"]),
                overtime_pay=float(r["overtime_pay"]),
                gross_pay=float(r["gross_pay"]),
                net_pay=float(r["net_pay"]),
                mismatch_count=int(r["mismatch_count"]),
                allowances=_components(r.get("allowances"), PayComponentKind.ALLOWANCE),
                deductions=_components(r.get("deductions"), PayComponentKind.DEDUCTION),
                recommendations=tuple(
                    Recommendation(severity=Severity(x["severity"]), message=x["message"])
                    for x in load_json(r.get("recommendations"), [])
                ),
                currency=r.get("currency") or "USD",
                calculated_at=r.get("calculated_at"),
            )
