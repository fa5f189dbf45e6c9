from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.service import AttendanceService
from .autoclose.closer import AutoCloser
from .biometric.ingestor import BiometricIngestor
from .biometric.mysql_biometric_repository import MySQLBiometricPunchRepository, MySQLDeviceMappingRepository
from .biometric.repository import BiometricPunchRepository, DeviceMappingRepository
from .common.locks import KeyedLock
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .events.publisher import EventBus
from .geofence.mysql_worksite_repository import MySQLWorksiteRepository
from .geofence.repository import WorksiteRepository
from .geofence.validator import GeofenceValidator
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.repository import LeaveRepository
from .payroll.calculator.standard_calculator import StandardPayrollCalculator
from .payroll.mysql_salary_repository import MySQLSalaryRepository
from .payroll.repository import SalaryRepository
from .payroll.service import SalaryCalculator
from .progress.gate import ProgressGate
from .progress.mysql_progress_repository import MySQLProgressRepository
from .progress.repository import ProgressRepository
from .reconciliation.engine import ReconciliationEngine
from .reconciliation.mysql_daily_record_repository import MySQLDailyRecordRepository
from .reconciliation.repository import DailyRecordRepository
from .sessions.mysql_session_repository import MySQLWorkSessionRepository
from .sessions.repository import WorkSessionRepository
from .sessions.state_machine import SessionStateMachine


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    worksites_repo: WorksiteRepository
    employees_repo: EmployeeRepository
    progress_repo: ProgressRepository
    leaves_repo: LeaveRepository
    sessions_repo: WorkSessionRepository
    punches_repo: BiometricPunchRepository
    device_mappings_repo: DeviceMappingRepository
    records_repo: DailyRecordRepository
    salaries_repo: SalaryRepository

    events: EventBus
    geofence: GeofenceValidator
    progress_gate: ProgressGate
    ingestor: BiometricIngestor
    reconciler: ReconciliationEngine
    state_machine: SessionStateMachine
    salary_calculator: SalaryCalculator
    auto_closer: AutoCloser
    attendance_service: AttendanceService


def _setting(settings: Any, name: str, default: Any) -> Any:
    if settings is None:
        return default
    value = getattr(settings, name, None)
    return default if value is None else value


def assemble(
    *,
    worksites_repo: WorksiteRepository,
    employees_repo: EmployeeRepository,
    progress_repo: ProgressRepository,
    leaves_repo: LeaveRepository,
    sessions_repo: WorkSessionRepository,
    punches_repo: BiometricPunchRepository,
    device_mappings_repo: DeviceMappingRepository,
    records_repo: DailyRecordRepository,
    salaries_repo: SalaryRepository,
    settings: Any = None,
    conn: Optional[DatabaseConnection] = None,
    events: Optional[EventBus] = None,
) -> Container:
    """Wire services over the given repositories (MySQL in the app, in-memory in tests)."""
    events = events or EventBus()

    geofence = GeofenceValidator(
        worksites_repo,
        default_radius_m=_setting(settings, "GEOFENCE_DEFAULT_RADIUS_M", constants.DEFAULT_GEOFENCE_RADIUS_M),
        low_accuracy_m=_setting(settings, "GEOFENCE_LOW_ACCURACY_M", constants.DEFAULT_LOW_ACCURACY_M),
    )
    progress_gate = ProgressGate(progress_repo)
    ingestor = BiometricIngestor(device_mappings_repo)
    reconciler = ReconciliationEngine(
        sessions_repo,
        punches_repo,
        leaves_repo,
        records_repo,
        events,
        tolerance_minutes=_setting(settings, "MISMATCH_TOLERANCE_MINUTES", constants.DEFAULT_MISMATCH_TOLERANCE_MINUTES),
        location_drift_m=_setting(settings, "LOCATION_DRIFT_M", constants.DEFAULT_LOCATION_DRIFT_M),
        max_retries=_setting(settings, "RECONCILE_MAX_RETRIES", constants.DEFAULT_RECONCILE_MAX_RETRIES),
        backoff_seconds=_setting(settings, "RECONCILE_BACKOFF_SECONDS", constants.DEFAULT_RECONCILE_BACKOFF_SECONDS),
        locks=KeyedLock(),
    )
    state_machine = SessionStateMachine(sessions_repo, geofence, progress_gate, leaves_repo, reconciler, events)
    salary_calculator = SalaryCalculator(
        employees_repo,
        records_repo,
        salaries_repo,
        events,
        calculator=StandardPayrollCalculator(
            standard_daily_hours=_setting(settings, "STANDARD_DAILY_HOURS", constants.DEFAULT_STANDARD_DAILY_HOURS),
            overtime_multiplier=_setting(settings, "OVERTIME_MULTIPLIER", constants.DEFAULT_OVERTIME_MULTIPLIER),
        ),
        working_days_override=_setting(settings, "WORKING_DAYS_OVERRIDE", {}),
        max_workers=_setting(settings, "BULK_SALARY_MAX_WORKERS", constants.DEFAULT_BULK_MAX_WORKERS),
        mismatch_high_threshold=_setting(settings, "MISMATCH_HIGH_THRESHOLD", constants.DEFAULT_MISMATCH_HIGH_THRESHOLD),
        low_attendance_rate=_setting(settings, "LOW_ATTENDANCE_RATE", constants.DEFAULT_LOW_ATTENDANCE_RATE),
        high_overtime_hours=_setting(settings, "HIGH_OVERTIME_HOURS", constants.DEFAULT_HIGH_OVERTIME_HOURS),
    )
    auto_closer = AutoCloser(
        sessions_repo,
        state_machine,
        reconciler,
        cutoff=_setting(settings, "AUTO_CLOSE_CUTOFF", constants.DEFAULT_AUTO_CLOSE_CUTOFF),
    )
    attendance_service = AttendanceService(
        employees_repo,
        sessions_repo,
        leaves_repo,
        punches_repo,
        records_repo,
        state_machine,
        ingestor,
        reconciler,
        salary_calculator,
        auto_closer,
    )

    return Container(
        conn=conn,
        worksites_repo=worksites_repo,
        employees_repo=employees_repo,
        progress_repo=progress_repo,
        leaves_repo=leaves_repo,
        sessions_repo=sessions_repo,
        punches_repo=punches_repo,
        device_mappings_repo=device_mappings_repo,
        records_repo=records_repo,
        salaries_repo=salaries_repo,
        events=events,
        geofence=geofence,
        progress_gate=progress_gate,
        ingestor=ingestor,
        reconciler=reconciler,
        state_machine=state_machine,
        salary_calculator=salary_calculator,
        auto_closer=auto_closer,
        attendance_service=attendance_service,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    return assemble(
        worksites_repo=MySQLWorksiteRepository(conn),
        employees_repo=MySQLEmployeeRepository(conn),
        progress_repo=MySQLProgressRepository(conn),
        leaves_repo=MySQLLeaveRepository(conn),
        sessions_repo=MySQLWorkSessionRepository(conn),
        punches_repo=MySQLBiometricPunchRepository(conn),
        device_mappings_repo=MySQLDeviceMappingRepository(conn),
        records_repo=MySQLDailyRecordRepository(conn),
        salaries_repo=MySQLSalaryRepository(conn),
        settings=settings,
        conn=conn,
    )
