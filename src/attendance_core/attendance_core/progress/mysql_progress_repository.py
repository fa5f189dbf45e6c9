from __future__ import annotations

from datetime import date
from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import ProgressEntry
from .repository import ProgressRepository


class MySQLProgressRepository(ProgressRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_employee_and_date(self, employee_id: int, work_date: date) -> Sequence[ProgressEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT entry_id, employee_id, work_date, notes, achievements, blockers, created_at
                FROM progress_entries
                WHERE employee_id=%s AND work_date=%s
                """,
                (employee_id, work_date),
            )
            return [
                ProgressEntry(
                    entry_id=int(r["entry_id"]),
                    employee_id=int(r["employee_id"]),
                    work_date=r["work_date"],
                    notes=r.get("notes"),
                    achievements=r.get("achievements"),
                    blockers=r.get("blockers"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
