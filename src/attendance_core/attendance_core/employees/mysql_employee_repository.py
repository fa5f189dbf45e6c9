from __future__ import annotations

from collections import defaultdict
from typing import Optional, Sequence

from ..core.enums import PayComponentKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee, PayComponent
from .repository import EmployeeRepository


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_employee(row: dict, components: Sequence[PayComponent]) -> Employee:
        base = row.get("base_salary")
        return Employee(
            employee_id=int(row["employee_id"]),
            full_name=row["full_name"],
            role=row.get("role") or "staff",
            department=row.get("department"),
            base_salary=float(base) if base is not None else None,
            is_active=bool(row.get("is_active", True)),
            currency=row.get("currency") or "USD",
            pay_components=tuple(components),
        )

    def _components_for(self, cur, employee_ids: Sequence[int]) -> dict[int, list[PayComponent]]:
        out: dict[int, list[PayComponent]] = defaultdict(list)
        if not employee_ids:
            return out
        placeholders = ",".join(["%s"] * len(employee_ids))
        cur.execute(
            f"""
            SELECT employee_id, component_name, amount, kind
            FROM employee_pay_components
            WHERE employee_id IN ({placeholders})
            ORDER BY employee_id, component_id
            """,
            tuple(employee_ids),
        )
        for r in fetchall(cur):
            out[int(r["employee_id"])].append(
                PayComponent(name=r["component_name"], amount=float(r["amount"]), kind=PayComponentKind(r["kind"]))
            )
        return out

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, full_name, role, department, base_salary, currency, is_active
                FROM employees
                WHERE employee_id=%s
                """,
                (employee_id,),
            )
            row = fetchone(cur)
            if not row:
                return None
            components = self._components_for(cur, [int(row["employee_id"])])
            return self._to_employee(row, components.get(int(row["employee_id"]), []))

    def list_active(self, *, department: Optional[str] = None) -> Sequence[Employee]:
        clauses = ["is_active=1"]
        params: list[object] = []
        if department:
            clauses.append("department=%s")
            params.append(department)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT employee_id, full_name, role, department, base_salary, currency, is_active
                FROM employees
                WHERE {" AND ".join(clauses)}
                ORDER BY employee_id
                """,
                tuple(params),
            )
            rows = fetchall(cur)
            components = self._components_for(cur, [int(r["employee_id"]) for r in rows])
            return [self._to_employee(r, components.get(int(r["employee_id"]), [])) for r in rows]
