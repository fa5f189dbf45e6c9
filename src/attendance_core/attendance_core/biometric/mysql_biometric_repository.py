from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import BiometricPunch
from .repository import BiometricPunchRepository, DeviceMappingRepository


class MySQLBiometricPunchRepository(BiometricPunchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def replace_punches(self, punches: Sequence[BiometricPunch]) -> int:
        if not punches:
            return 0
        keys = sorted({p.key for p in punches})

        # One transaction: readers never see a key with its old punch gone and the new one missing.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "DELETE FROM biometric_punches WHERE employee_id=%s AND work_date=%s",
                keys,
            )
            cur.executemany(
                """
                INSERT INTO biometric_punches(employee_id, work_date, device_id, in_time, out_time, source_file_id)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                [(p.employee_id, p.work_date, p.device_id, p.in_time, p.out_time, p.source_file_id) for p in punches],
            )
        return len(punches)

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[BiometricPunch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, work_date, device_id, in_time, out_time, source_file_id
                FROM biometric_punches
                WHERE employee_id=%s AND work_date=%s
                ORDER BY in_time
                """,
                (employee_id, work_date),
            )
            rows = fetchall(cur)
        if not rows:
            return None

        # Several devices can hold a punch for the same day; fold them like the ingestor does.
        first = rows[0]
        outs = [r["out_time"] for r in rows if r.get("out_time") is not None]
        return BiometricPunch(
            employee_id=int(first["employee_id"]),
            work_date=first["work_date"],
            device_id=str(first["device_id"]),
            in_time=first["in_time"],
            out_time=max(outs) if outs else None,
            source_file_id=first.get("source_file_id"),
        )


class MySQLDeviceMappingRepository(DeviceMappingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def load_mappings(self) -> Mapping[tuple[str, str], int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT device_id, device_user_id, employee_id FROM device_mappings")
            return {
                (str(r["device_id"]), str(r["device_user_id"])): int(r["employee_id"])
                for r in fetchall(cur)
            }
