"""
Merges self-report, punch clock and leave into one DailyAttendanceRecord.

Runs for a key are serialised in-process with a per-key lock; across
processes the record's version column catches interleaved writers, and the
run is retried with exponential backoff before the conflict is surfaced.
"""
from __future__ import annotations

import math
import time
from datetime import date, datetime
from typing import Callable, Optional

import structlog

from ..biometric.repository import BiometricPunchRepository
from ..common.locks import KeyedLock
from ..core.constants import (
    DEFAULT_LOCATION_DRIFT_M,
    DEFAULT_MISMATCH_TOLERANCE_MINUTES,
    DEFAULT_RECONCILE_BACKOFF_SECONDS,
    DEFAULT_RECONCILE_MAX_RETRIES,
    MAX_DAILY_HOURS,
)
from ..core.enums import ClosedBy
from ..core.exceptions import ReconciliationConflictError
from ..events.model import EventType, StateChangeEvent
from ..events.publisher import EventPublisher
from ..geofence.validator import haversine_distance
from ..leave.repository import LeaveRepository, find_approved_leave
from ..sessions.model import WorkSession
from ..sessions.repository import WorkSessionRepository
from .factory import ReconciliationStrategyFactory
from .model import (
    FLAG_AUTO_CLOSED,
    FLAG_LOCATION_DRIFT,
    FLAG_LOW_CONFIDENCE,
    DailyAttendanceRecord,
    DayEvidence,
    DiscrepancyFlag,
)
from .repository import DailyRecordRepository
from .strategies.base import RuleSettings

logger = structlog.get_logger(__name__)


def clamp_hours(hours: float) -> float:
    if hours is None or math.isnan(hours):
        return 0.0
    return round(min(MAX_DAILY_HOURS, max(0.0, hours)), 2)


def session_flags(session: WorkSession, *, drift_m: float) -> list[DiscrepancyFlag]:
    flags = []
    if session.closed_by == ClosedBy.AUTO_CLOSER:
        flags.append(DiscrepancyFlag(FLAG_AUTO_CLOSED))
    if session.low_confidence_location:
        flags.append(DiscrepancyFlag(FLAG_LOW_CONFIDENCE))
    start, end = session.start_location, session.end_location
    if start is not None and end is not None:
        moved = haversine_distance(start.latitude, start.longitude, end.latitude, end.longitude)
        if moved > drift_m:
            flags.append(DiscrepancyFlag(FLAG_LOCATION_DRIFT, f"{moved:.0f}m"))
    return flags


class ReconciliationEngine:
    def __init__(
        self,
        sessions: WorkSessionRepository,
        punches: BiometricPunchRepository,
        leaves: LeaveRepository,
        records: DailyRecordRepository,
        events: EventPublisher,
        *,
        strategy_factory: Optional[ReconciliationStrategyFactory] = None,
        tolerance_minutes: int = DEFAULT_MISMATCH_TOLERANCE_MINUTES,
        location_drift_m: float = DEFAULT_LOCATION_DRIFT_M,
        max_retries: int = DEFAULT_RECONCILE_MAX_RETRIES,
        backoff_seconds: float = DEFAULT_RECONCILE_BACKOFF_SECONDS,
        locks: Optional[KeyedLock] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._sessions = sessions
        self._punches = punches
        self._leaves = leaves
        self._records = records
        self._events = events
        self._factory = strategy_factory or ReconciliationStrategyFactory()
        self._settings = RuleSettings(tolerance_minutes=int(tolerance_minutes), location_drift_m=float(location_drift_m))
        self._max_retries = int(max_retries)
        self._backoff_seconds = float(backoff_seconds)
        self._locks = locks if locks is not None else KeyedLock()
        self._sleep = sleep

    def gather(self, employee_id: int, work_date: date) -> DayEvidence:
        return DayEvidence(
            employee_id=employee_id,
            work_date=work_date,
            session=self._sessions.get(employee_id, work_date),
            punch=self._punches.get_for_employee_and_date(employee_id, work_date),
            leave=find_approved_leave(self._leaves, employee_id, work_date),
        )

    def derive(self, evidence: DayEvidence) -> DailyAttendanceRecord:
        """Pure: the same evidence always yields the same record."""
        outcome = self._factory.for_kind(evidence.kind).apply(evidence, self._settings)

        flags = list(outcome.flags)
        if not outcome.final and evidence.session is not None:
            flags.extend(session_flags(evidence.session, drift_m=self._settings.location_drift_m))

        # Deduplicate by code, keeping the first detail seen; stable order.
        unique: dict[str, DiscrepancyFlag] = {}
        for flag in flags:
            unique.setdefault(flag.code, flag)

        session_hours = evidence.session.session_hours if evidence.session else None
        biometric_hours = evidence.punch.duration_hours if evidence.punch else None
        return DailyAttendanceRecord(
            employee_id=evidence.employee_id,
            work_date=evidence.work_date,
            is_present=outcome.is_present,
            hours_worked=clamp_hours(outcome.hours_worked),
            source=outcome.source,
            flags=tuple(sorted(unique.values())),
            work_location=outcome.work_location,
            session_hours=round(session_hours, 2) if session_hours is not None else None,
            biometric_hours=round(biometric_hours, 2) if biometric_hours is not None else None,
        )

    def reconcile(self, employee_id: int, work_date: date, *, now: Optional[datetime] = None) -> DailyAttendanceRecord:
        attempt = 0
        while True:
            try:
                record = self._reconcile_once(employee_id, work_date)
                break
            except ReconciliationConflictError:
                if attempt >= self._max_retries:
                    logger.error(
                        "reconciliation_conflict_exhausted",
                        employee_id=employee_id,
                        work_date=work_date.isoformat(),
                        attempts=attempt + 1,
                    )
                    raise
                delay = self._backoff_seconds * (2 ** attempt)
                logger.warning(
                    "reconciliation_conflict_retry",
                    employee_id=employee_id,
                    work_date=work_date.isoformat(),
                    attempt=attempt + 1,
                    delay_s=delay,
                )
                self._sleep(delay)
                attempt += 1

        logger.info(
            "attendance_reconciled",
            employee_id=employee_id,
            work_date=work_date.isoformat(),
            source=record.source.value,
            hours_worked=record.hours_worked,
            flags=record.flag_codes,
        )
        self._events.publish(
            StateChangeEvent(
                type=EventType.ATTENDANCE_RECONCILED,
                employee_id=employee_id,
                work_date=work_date,
                new_status="Present" if record.is_present else "Absent",
                occurred_at=now or datetime.now(),
                payload=record.to_dict(),
            )
        )
        return record

    def _reconcile_once(self, employee_id: int, work_date: date) -> DailyAttendanceRecord:
        with self._locks.hold((employee_id, work_date)):
            existing = self._records.get(employee_id, work_date)
            record = self.derive(self.gather(employee_id, work_date))
            return self._records.save(record, expected_version=existing.version if existing else None)
