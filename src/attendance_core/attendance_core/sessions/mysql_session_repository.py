from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import ClosedBy, SessionStatus, WorkLocation
from ..core.exceptions import AlreadyStartedError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from ..geofence.model import Coordinate
from .model import WorkSession
from .repository import WorkSessionRepository

_COLUMNS = """
    employee_id, work_date, status, start_time, end_time,
    start_lat, start_lng, start_accuracy, end_lat, end_lng, end_accuracy,
    work_location, closed_by, site_id, low_confidence_location
"""


def _coordinate(lat, lng, accuracy) -> Optional[Coordinate]:
    if lat is None or lng is None:
        return None
    return Coordinate(latitude=float(lat), longitude=float(lng), accuracy_m=float(accuracy) if accuracy is not None else None)


def _to_session(r: dict) -> WorkSession:
    return WorkSession(
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        status=SessionStatus(r["status"]),
        start_time=r["start_time"],
        end_time=r.get("end_time"),
        start_location=_coordinate(r["start_lat"], r["start_lng"], r.get("start_accuracy")),
        end_location=_coordinate(r.get("end_lat"), r.get("end_lng"), r.get("end_accuracy")),
        work_location=WorkLocation(r["work_location"]),
        closed_by=ClosedBy(r["closed_by"]) if r.get("closed_by") else None,
        site_id=r.get("site_id"),
        low_confidence_location=bool(r.get("low_confidence_location")),
    )


class MySQLWorkSessionRepository(WorkSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, employee_id: int, work_date: date) -> Optional[WorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_sessions WHERE employee_id=%s AND work_date=%s",
                (employee_id, work_date),
            )
            row = fetchone(cur)
            return _to_session(row) if row else None

    def create_in_progress(self, session: WorkSession) -> WorkSession:
        loc = session.start_location
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                # UNIQUE(employee_id, work_date) makes this the check-and-create.
                cur.execute(
                    """
                    INSERT INTO work_sessions(
                        employee_id, work_date, status, start_time,
                        start_lat, start_lng, start_accuracy,
                        work_location, site_id, low_confidence_location
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        session.employee_id,
                        session.work_date,
                        SessionStatus.IN_PROGRESS.value,
                        session.start_time,
                        loc.latitude,
                        loc.longitude,
                        loc.accuracy_m,
                        session.work_location.value,
                        session.site_id,
                        int(session.low_confidence_location),
                    ),
                )
        except mysql.connector.Error as exc:
            if is_duplicate_key(exc):
                raise AlreadyStartedError(session.employee_id, session.work_date)
            raise
        return session

    def close(
        self,
        *,
        employee_id: int,
        work_date: date,
        status: SessionStatus,
        end_time: datetime,
        closed_by: ClosedBy,
        end_location: Optional[Coordinate] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_sessions
                SET status=%s, end_time=%s, closed_by=%s, end_lat=%s, end_lng=%s, end_accuracy=%s
                WHERE employee_id=%s AND work_date=%s AND status=%s
                """,
                (
                    status.value,
                    end_time,
                    closed_by.value,
                    end_location.latitude if end_location else None,
                    end_location.longitude if end_location else None,
                    end_location.accuracy_m if end_location else None,
                    employee_id,
                    work_date,
                    SessionStatus.IN_PROGRESS.value,
                ),
            )
            return cur.rowcount > 0

    def list_in_progress_before(self, work_date: date) -> Sequence[WorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM work_sessions
                WHERE status=%s AND work_date<%s
                ORDER BY work_date, employee_id
                """,
                (SessionStatus.IN_PROGRESS.value, work_date),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_for_date(self, work_date: date) -> Sequence[WorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_sessions WHERE work_date=%s ORDER BY employee_id",
                (work_date,),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_closed_without_record(self, on_or_before: date) -> Sequence[WorkSession]:
        columns = ", ".join(f"s.{c.strip()}" for c in _COLUMNS.split(","))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {columns} FROM work_sessions s
                LEFT JOIN daily_attendance_records d
                    ON d.employee_id = s.employee_id AND d.work_date = s.work_date
                WHERE s.status IN (%s, %s) AND s.work_date<=%s AND d.employee_id IS NULL
                ORDER BY s.work_date, s.employee_id
                """,
                (SessionStatus.COMPLETED.value, SessionStatus.AUTO_CLOSED.value, on_or_before),
            )
            return [_to_session(r) for r in fetchall(cur)]
