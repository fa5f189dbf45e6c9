from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceSource, WorkLocation
from ..core.exceptions import ReconciliationConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, is_duplicate_key, load_json
from .model import DailyAttendanceRecord, DiscrepancyFlag
from .repository import DailyRecordRepository

_COLUMNS = """
    employee_id, work_date, is_present, hours_worked, source, discrepancy_flags,
    work_location, session_hours, biometric_hours, version
"""


def _to_record(r: dict) -> DailyAttendanceRecord:
    flags = tuple(
        DiscrepancyFlag(code=f["code"], detail=f.get("detail", ""))
        for f in load_json(r.get("discrepancy_flags"), [])
    )
    return DailyAttendanceRecord(
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        is_present=bool(r["is_present"]),
        hours_worked=float(r["hours_worked"]),
        source=AttendanceSource(r["source"]),
        flags=flags,
        work_location=WorkLocation(r["work_location"]) if r.get("work_location") else None,
        session_hours=float(r["session_hours"]) if r.get("session_hours") is not None else None,
        biometric_hours=float(r["biometric_hours"]) if r.get("biometric_hours") is not None else None,
        version=int(r["version"]),
    )


class MySQLDailyRecordRepository(DailyRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, employee_id: int, work_date: date) -> Optional[DailyAttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM daily_attendance_records WHERE employee_id=%s AND work_date=%s",
                (employee_id, work_date),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def save(self, record: DailyAttendanceRecord, *, expected_version: Optional[int]) -> DailyAttendanceRecord:
        values = (
            int(record.is_present),
            record.hours_worked,
            record.source.value,
            dump_json([f.to_dict() for f in record.flags]),
            record.work_location.value if record.work_location else None,
            record.session_hours,
            record.biometric_hours,
        )
        if expected_version is None:
            try:
                with db_cursor(self._conn_factory) as (_, cur):
                    cur.execute(
                        """
                        INSERT INTO daily_attendance_records(
                            employee_id, work_date, is_present, hours_worked, source, discrepancy_flags,
                            work_location, session_hours, biometric_hours, version
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                        """,
                        (record.employee_id, record.work_date) + values,
                    )
            except mysql.connector.Error as exc:
                if is_duplicate_key(exc):
                    raise ReconciliationConflictError(record.employee_id, record.work_date)
                raise
            return replace(record, version=1)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE daily_attendance_records
                SET is_present=%s, hours_worked=%s, source=%s, discrepancy_flags=%s,
                    work_location=%s, session_hours=%s, biometric_hours=%s,
                    version=version+1
                WHERE employee_id=%s AND work_date=%s AND version=%s
                """,
                values + (record.employee_id, record.work_date, expected_version),
            )
            if cur.rowcount == 0:
                raise ReconciliationConflictError(record.employee_id, record.work_date)
        return replace(record, version=expected_version + 1)

    def list_for_employee(self, employee_id: int, *, start_date: date, end_date: date) -> Sequence[DailyAttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM daily_attendance_records
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (employee_id, start_date, end_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_date(self, work_date: date) -> Sequence[DailyAttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM daily_attendance_records WHERE work_date=%s ORDER BY employee_id",
                (work_date,),
            )
            return [_to_record(r) for r in fetchall(cur)]
