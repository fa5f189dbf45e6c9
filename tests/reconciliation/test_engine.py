from __future__ import annotations

import threading
import time
from datetime import date

import pytest

from src.attendance_core.attendance_core.biometric.model import BiometricPunch
from src.attendance_core.attendance_core.core.enums import AttendanceSource, ClosedBy, SessionStatus, WorkLocation
from src.attendance_core.attendance_core.core.exceptions import ReconciliationConflictError
from src.attendance_core.attendance_core.geofence.model import Coordinate
from src.attendance_core.attendance_core.reconciliation.engine import ReconciliationEngine
from src.attendance_core.attendance_core.sessions.model import WorkSession
from tests.fakes import (
    InMemoryLeaves,
    InMemoryPunches,
    InMemoryRecords,
    InMemorySessions,
    RecordingEvents,
    at,
)

DAY = date(2025, 3, 3)
HERE = Coordinate(10.0, 106.0, 10.0)


def _session(start_h, end_h=None, *, closed_by=ClosedBy.USER, end_location=None, low_confidence=False):
    return WorkSession(
        employee_id=1,
        work_date=DAY,
        status=SessionStatus.IN_PROGRESS if end_h is None else SessionStatus.COMPLETED,
        start_time=at(DAY, *start_h),
        end_time=at(DAY, *end_h) if end_h is not None else None,
        start_location=HERE,
        end_location=end_location,
        work_location=WorkLocation.OFFICE,
        closed_by=closed_by if end_h is not None else None,
        low_confidence_location=low_confidence,
    )


def _punch(in_h, out_h=None):
    return BiometricPunch(
        employee_id=1,
        work_date=DAY,
        device_id="dev1",
        in_time=at(DAY, *in_h),
        out_time=at(DAY, *out_h) if out_h is not None else None,
    )


class Harness:
    def __init__(self, **engine_kwargs):
        self.sessions = InMemorySessions()
        self.punches = InMemoryPunches()
        self.leaves = InMemoryLeaves()
        self.records = InMemoryRecords()
        self.events = RecordingEvents()
        self.sleeps = []
        self.engine = ReconciliationEngine(
            self.sessions,
            self.punches,
            self.leaves,
            self.records,
            self.events,
            sleep=self.sleeps.append,
            **engine_kwargs,
        )


def test_mismatch_beyond_tolerance_keeps_self_report_hours():
    h = Harness()
    h.sessions.put(_session((9, 0), (17, 0)))
    h.punches.replace_punches([_punch((9, 30), (16, 0))])

    record = h.engine.reconcile(1, DAY)

    assert record.hours_worked == 8.0
    assert record.biometric_hours == 6.5
    assert record.source == AttendanceSource.RECONCILED
    assert record.is_present is True
    [flag] = record.flags
    assert flag.code == "self-report-biometric-mismatch"
    assert "8.00h" in flag.detail and "6.50h" in flag.detail


def test_difference_within_tolerance_is_not_flagged():
    h = Harness()
    h.sessions.put(_session((9, 0), (17, 0)))
    h.punches.replace_punches([_punch((9, 10), (16, 50))])

    record = h.engine.reconcile(1, DAY)

    assert record.flags == ()
    assert record.hours_worked == 8.0


def test_tolerance_is_configurable():
    h = Harness(tolerance_minutes=10)
    h.sessions.put(_session((9, 0), (17, 0)))
    h.punches.replace_punches([_punch((9, 10), (16, 50))])

    assert h.engine.reconcile(1, DAY).flag_codes == ["self-report-biometric-mismatch"]


def test_only_session():
    h = Harness()
    h.sessions.put(_session((9, 0), (15, 0)))

    record = h.engine.reconcile(1, DAY)

    assert record.source == AttendanceSource.SELF_REPORT
    assert record.hours_worked == 6.0
    assert record.flag_codes == ["no-biometric-punch"]


def test_only_biometric():
    h = Harness()
    h.punches.replace_punches([_punch((8, 0), (16, 30))])

    record = h.engine.reconcile(1, DAY)

    assert record.source == AttendanceSource.BIOMETRIC
    assert record.hours_worked == 8.5
    assert record.is_present is True
    assert record.flag_codes == ["no-self-report"]


def test_neither_source_is_absent():
    record = Harness().engine.reconcile(1, DAY)

    assert record.is_present is False
    assert record.hours_worked == 0
    assert record.flags == ()
    assert record.source == AttendanceSource.SELF_REPORT
    assert record.work_location is None
    assert record.session_hours is None and record.biometric_hours is None


def test_approved_leave_wins_over_everything():
    h = Harness()
    h.leaves.add(1, date(2025, 3, 1), date(2025, 3, 7))
    h.punches.replace_punches([_punch((9, 0), (17, 0))])

    record = h.engine.reconcile(1, DAY)

    assert record.source == AttendanceSource.LEAVE
    assert record.is_present is False
    assert record.hours_worked == 0
    assert record.flags == ()


def test_auto_closed_session_is_flagged():
    h = Harness()
    h.sessions.put(_session((9, 0), (23, 59), closed_by=ClosedBy.AUTO_CLOSER))

    record = h.engine.reconcile(1, DAY)

    assert "auto-closed-no-explicit-end" in record.flag_codes
    assert record.hours_worked == pytest.approx(14.98, abs=0.01)


def test_in_progress_session_uses_punch_hours():
    h = Harness()
    h.sessions.put(_session((9, 0)))
    h.punches.replace_punches([_punch((9, 0), (13, 0))])

    record = h.engine.reconcile(1, DAY)

    assert record.hours_worked == 4.0
    assert record.flag_codes == ["session-in-progress"]


def test_incomplete_punch_low_confidence_and_drift_flags():
    h = Harness()
    far = Coordinate(HERE.latitude + 0.05, HERE.longitude, 10.0)
    h.sessions.put(_session((9, 0), (17, 0), end_location=far, low_confidence=True))
    h.punches.replace_punches([_punch((9, 0))])

    record = h.engine.reconcile(1, DAY)

    assert record.flag_codes == [
        "incomplete-biometric-punch",
        "low-confidence-location",
        "start-end-location-drift",
    ]
    assert record.hours_worked == 8.0


def test_reconcile_is_idempotent():
    h = Harness()
    h.sessions.put(_session((9, 0), (17, 0)))
    h.punches.replace_punches([_punch((9, 30), (16, 0))])

    first = h.engine.reconcile(1, DAY)
    second = h.engine.reconcile(1, DAY)

    assert first == second
    assert second.flag_codes == ["self-report-biometric-mismatch"]
    assert h.records.get(1, DAY).version == 2


def test_record_is_overwritten_when_evidence_changes():
    h = Harness()
    h.sessions.put(_session((9, 0), (17, 0)))
    assert h.engine.reconcile(1, DAY).flag_codes == ["no-biometric-punch"]

    h.punches.replace_punches([_punch((9, 0), (17, 5))])
    record = h.engine.reconcile(1, DAY)

    assert record.flags == ()
    assert h.records.get(1, DAY) == record


def test_conflict_is_retried_with_backoff():
    h = Harness(backoff_seconds=0.1, max_retries=3)
    h.sessions.put(_session((9, 0), (17, 0)))
    h.records.fail_next_saves = 2

    record = h.engine.reconcile(1, DAY)

    assert record.hours_worked == 8.0
    assert h.sleeps == [0.1, 0.2]
    assert h.records.save_calls == 3


def test_conflict_surfaces_after_retries():
    h = Harness(backoff_seconds=0.0, max_retries=2)
    h.records.fail_next_saves = 10

    with pytest.raises(ReconciliationConflictError):
        h.engine.reconcile(1, DAY)
    assert h.records.save_calls == 3


def test_hours_are_clamped_to_a_day():
    h = Harness()
    h.punches.replace_punches(
        [BiometricPunch(employee_id=1, work_date=DAY, device_id="d", in_time=at(DAY, 0), out_time=at(date(2025, 3, 5), 0))]
    )
    assert h.engine.reconcile(1, DAY).hours_worked == 24.0


def test_reconcile_publishes_event():
    h = Harness()
    h.engine.reconcile(1, DAY)
    assert h.events.types() == ["attendance-reconciled"]
    assert h.events.events[0].new_status == "Absent"


class SlowPunches(InMemoryPunches):
    """Punch store whose reads take a while and record how many overlap."""

    def __init__(self):
        super().__init__()
        self.reading = threading.Event()
        self._counter = threading.Lock()
        self.active = 0
        self.peak = 0

    def get_for_employee_and_date(self, employee_id, work_date):
        with self._counter:
            self.active += 1
            self.peak = max(self.peak, self.active)
        self.reading.set()
        time.sleep(0.05)
        try:
            return super().get_for_employee_and_date(employee_id, work_date)
        finally:
            with self._counter:
                self.active -= 1


class CountingRecords(InMemoryRecords):
    def __init__(self):
        super().__init__()
        self.conflicts = 0

    def save(self, record, *, expected_version):
        try:
            return super().save(record, expected_version=expected_version)
        except ReconciliationConflictError:
            self.conflicts += 1
            raise


def test_concurrent_reconciles_of_one_key_do_not_interleave():
    punches = SlowPunches()
    records = CountingRecords()
    engine = ReconciliationEngine(
        InMemorySessions(),
        punches,
        InMemoryLeaves(),
        records,
        RecordingEvents(),
        sleep=lambda _: None,
    )
    punches.replace_punches([_punch((9, 0), (17, 0))])
    errors = []

    def upload_reconcile():
        try:
            engine.reconcile(1, DAY)
        except Exception as exc:
            errors.append(exc)

    def reupload_reconcile():
        try:
            punches.reading.wait(timeout=2)
            punches.replace_punches([_punch((8, 0), (18, 0))])
            engine.reconcile(1, DAY)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=upload_reconcile), threading.Thread(target=reupload_reconcile)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert errors == []
    assert punches.peak == 1
    assert records.conflicts == 0
    assert records.save_calls == 2
    final = records.get(1, DAY)
    assert final.version == 2
    assert final.biometric_hours == 10.0
    assert final == engine.derive(engine.gather(1, DAY))
