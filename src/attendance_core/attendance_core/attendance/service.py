from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

import structlog

from ..autoclose.closer import AutoCloser, SweepReport
from ..biometric.ingestor import BiometricIngestor
from ..biometric.repository import BiometricPunchRepository
from ..common.datetime_utils import hours_between
from ..common.validators import optional_float, require_float
from ..core.enums import SessionStatus, WorkLocation
from ..core.exceptions import DomainError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..geofence.model import Coordinate
from ..leave.repository import LeaveRepository, find_approved_leave
from ..payroll.model import BulkSalaryResult, SalaryCalculation
from ..payroll.service import SalaryCalculator
from ..reconciliation.engine import ReconciliationEngine
from ..reconciliation.model import DailyAttendanceRecord
from ..reconciliation.repository import DailyRecordRepository
from ..sessions.model import WorkSession
from ..sessions.repository import WorkSessionRepository
from ..sessions.state_machine import DayClosure, SessionStateMachine

logger = structlog.get_logger(__name__)


def parse_work_location(value: Any) -> Optional[WorkLocation]:
    if value is None or value == "":
        return None
    for loc in WorkLocation:
        if str(value).strip().lower() == loc.value.lower():
            return loc
    raise ValidationError("work_location must be one of Office, Home, Remote")


def parse_status(value: Any) -> Optional[SessionStatus]:
    if value is None or value == "":
        return None
    for status in SessionStatus:
        if str(value).strip().lower() == status.value.lower():
            return status
    raise ValidationError(f"Unknown status {value!r}")


def build_coordinate(latitude: Any, longitude: Any, accuracy: Any = None) -> Coordinate:
    return Coordinate(
        latitude=require_float(latitude, "latitude"),
        longitude=require_float(longitude, "longitude"),
        accuracy_m=optional_float(accuracy, "accuracy"),
    )


def session_to_dict(session: WorkSession) -> dict:
    return {
        "employee_id": session.employee_id,
        "date": session.work_date.isoformat(),
        "status": session.status.value,
        "work_location": session.work_location.value,
        "start_time": session.start_time.isoformat(),
        "end_time": session.end_time.isoformat() if session.end_time else None,
        "closed_by": session.closed_by.value if session.closed_by else None,
        "session_hours": round(session.session_hours, 2) if session.session_hours is not None else None,
        "low_confidence_location": session.low_confidence_location,
    }


class AttendanceService:
    """The operations the outer application (web, jobs, admin tools) calls into."""

    def __init__(
        self,
        employees: EmployeeRepository,
        sessions: WorkSessionRepository,
        leaves: LeaveRepository,
        punches: BiometricPunchRepository,
        records: DailyRecordRepository,
        state_machine: SessionStateMachine,
        ingestor: BiometricIngestor,
        reconciler: ReconciliationEngine,
        salary: SalaryCalculator,
        auto_closer: AutoCloser,
    ):
        self._employees = employees
        self._sessions = sessions
        self._leaves = leaves
        self._punches = punches
        self._records = records
        self._state_machine = state_machine
        self._ingestor = ingestor
        self._reconciler = reconciler
        self._salary = salary
        self._auto_closer = auto_closer

    def _require_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(employee_id)
        if not employee or not employee.is_active:
            raise ValidationError(f"Employee {employee_id} does not exist")
        return employee

    def start_day(
        self,
        employee_id: int,
        location: Optional[Coordinate],
        *,
        work_location: Optional[WorkLocation] = None,
        now: Optional[datetime] = None,
    ) -> WorkSession:
        now = now or datetime.now()
        self._require_employee(employee_id)
        return self._state_machine.start(employee_id, now.date(), location, work_location=work_location, now=now)

    def end_day(
        self,
        employee_id: int,
        location: Optional[Coordinate] = None,
        *,
        now: Optional[datetime] = None,
    ) -> DayClosure:
        now = now or datetime.now()
        self._require_employee(employee_id)
        return self._state_machine.end(employee_id, now.date(), location, now=now)

    def get_live_attendance(
        self,
        work_date: date,
        *,
        department: Optional[str] = None,
        status: Optional[SessionStatus] = None,
        work_location: Optional[WorkLocation] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        now = now or datetime.now()
        sessions = {s.employee_id: s for s in self._sessions.list_for_date(work_date)}
        records = {r.employee_id: r for r in self._records.list_for_date(work_date)}

        rows = []
        for employee in self._employees.list_active(department=department):
            session = sessions.get(employee.employee_id)
            if session is not None:
                current = session.status
            elif find_approved_leave(self._leaves, employee.employee_id, work_date) is not None:
                current = SessionStatus.ON_LEAVE
            else:
                current = SessionStatus.NOT_STARTED
            rows.append(self._live_row(employee, session, records.get(employee.employee_id), current, now))

        counts = Counter(r["status"] for r in rows)
        if status is not None:
            rows = [r for r in rows if r["status"] == status.value]
        if work_location is not None:
            rows = [r for r in rows if r["work_location"] == work_location.value]

        return {
            "date": work_date.isoformat(),
            "employees": rows,
            "counts": {s.value: counts.get(s.value, 0) for s in SessionStatus},
            "total": sum(counts.values()),
        }

    def _live_row(
        self,
        employee: Employee,
        session: Optional[WorkSession],
        record: Optional[DailyAttendanceRecord],
        current: SessionStatus,
        now: datetime,
    ) -> dict:
        hours = None
        if session is not None:
            hours = session.session_hours
            if hours is None:
                # Still working: time elapsed so far.
                hours = hours_between(session.start_time, now)
        return {
            "employee_id": employee.employee_id,
            "full_name": employee.full_name,
            "department": employee.department,
            "role": employee.role,
            "status": current.value,
            "work_location": session.work_location.value if session else None,
            "start_time": session.start_time.isoformat() if session else None,
            "end_time": session.end_time.isoformat() if session and session.end_time else None,
            "hours": round(hours, 2) if hours is not None else None,
            "discrepancy_flags": record.flag_codes if record else [],
        }

    def upload_biometric(
        self,
        rows: Iterable[Mapping[str, Any]],
        *,
        source_file_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        if rows is None or isinstance(rows, (str, bytes, Mapping)):
            raise ValidationError("rows must be a list of punch rows")
        rows = list(rows)

        result = self._ingestor.parse(rows, source_file_id=source_file_id)
        processed = self._punches.replace_punches(result.punches)

        errors = [
            {"row": s.row_index, "reason": s.reason, "detail": s.detail}
            for s in result.skipped
        ]
        reconciled = 0
        for punch in result.punches:
            try:
                self._reconciler.reconcile(punch.employee_id, punch.work_date, now=now)
                reconciled += 1
            except DomainError as exc:
                logger.warning(
                    "biometric_reconcile_failed",
                    employee_id=punch.employee_id,
                    work_date=punch.work_date.isoformat(),
                    error=str(exc),
                )
                errors.append(
                    {
                        "employee_id": punch.employee_id,
                        "date": punch.work_date.isoformat(),
                        "reason": exc.code,
                        "detail": str(exc),
                    }
                )
            except Exception as exc:
                logger.exception(
                    "biometric_reconcile_crashed",
                    employee_id=punch.employee_id,
                    work_date=punch.work_date.isoformat(),
                )
                errors.append(
                    {
                        "employee_id": punch.employee_id,
                        "date": punch.work_date.isoformat(),
                        "reason": "reconcile_failed",
                        "detail": str(exc),
                    }
                )

        first, last = result.date_range
        summary = {
            "processed": processed,
            "skipped": len(result.skipped),
            "errors": errors,
            "reconciled": reconciled,
            "date_range": {
                "start": first.isoformat() if first else None,
                "end": last.isoformat() if last else None,
            },
            "employees": result.employee_ids,
        }
        logger.info(
            "biometric_uploaded",
            rows=len(rows),
            processed=processed,
            skipped=summary["skipped"],
            errors=len(errors),
            source_file_id=source_file_id,
        )
        return summary

    def calculate_salary(
        self,
        employee_id: int,
        year: int,
        month: int,
        working_days: Optional[int] = None,
    ) -> SalaryCalculation:
        return self._salary.calculate(employee_id, year, month, working_days)

    def calculate_bulk_salary(
        self,
        year: int,
        month: int,
        working_days: Optional[int] = None,
        *,
        employee_ids: Optional[Iterable[int]] = None,
    ) -> BulkSalaryResult:
        return self._salary.calculate_bulk(year, month, working_days, employee_ids=employee_ids)

    def run_auto_close(self, *, now: Optional[datetime] = None) -> SweepReport:
        return self._auto_closer.sweep(now=now)
