from __future__ import annotations

from datetime import date
from typing import Sequence

from ..core.enums import LeaveStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import LeaveRecord
from .repository import LeaveRepository


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_employee(self, employee_id: int, *, start_date: date, end_date: date) -> Sequence[LeaveRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT leave_id, employee_id, start_date, end_date, leave_type, status
                FROM leave_records
                WHERE employee_id=%s AND start_date<=%s AND end_date>=%s
                ORDER BY start_date
                """,
                (employee_id, end_date, start_date),
            )
            return [
                LeaveRecord(
                    leave_id=int(r["leave_id"]),
                    employee_id=int(r["employee_id"]),
                    start_date=r["start_date"],
                    end_date=r["end_date"],
                    leave_type=r["leave_type"],
                    status=LeaveStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]
