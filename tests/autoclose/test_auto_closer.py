from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_core.attendance_core.autoclose.closer import AutoCloser
from src.attendance_core.attendance_core.autoclose.scheduler import AUTO_CLOSE_JOB_ID, build_scheduler
from src.attendance_core.attendance_core.core.enums import ClosedBy, SessionStatus
from src.attendance_core.attendance_core.core.exceptions import ReconciliationConflictError
from src.attendance_core.attendance_core.geofence.model import Coordinate
from tests.fakes import OFFICE, at, build_fake_container, make_employee

DAY = date(2025, 3, 3)
NEXT_MORNING = datetime(2025, 3, 4, 0, 30)
AT_OFFICE = Coordinate(OFFICE.latitude, OFFICE.longitude, 5.0)


def test_session_left_open_past_midnight_is_auto_closed():
    c = build_fake_container()
    c.state_machine.start(1, DAY, AT_OFFICE, now=at(DAY, 9))

    report = c.auto_closer.sweep(now=NEXT_MORNING)

    assert report.closed == [(1, DAY)]
    session = c.sessions_repo.get(1, DAY)
    assert session.status == SessionStatus.AUTO_CLOSED
    assert session.closed_by == ClosedBy.AUTO_CLOSER
    assert session.end_time == datetime(2025, 3, 3, 23, 59, 59)

    record = c.records_repo.get(1, DAY)
    assert "auto-closed-no-explicit-end" in record.flag_codes
    assert record.hours_worked == pytest.approx(15.0, abs=0.01)


def test_sweep_is_idempotent_and_leaves_today_alone():
    c = build_fake_container(employees=[make_employee(1), make_employee(2)])
    c.state_machine.start(1, DAY, AT_OFFICE, now=at(DAY, 9))
    c.state_machine.start(2, date(2025, 3, 4), AT_OFFICE, now=datetime(2025, 3, 4, 0, 10))

    first = c.auto_closer.sweep(now=NEXT_MORNING)
    second = c.auto_closer.sweep(now=NEXT_MORNING)

    assert first.closed == [(1, DAY)]
    assert second.closed == []
    assert c.sessions_repo.get(2, date(2025, 3, 4)).status == SessionStatus.IN_PROGRESS


def test_completed_sessions_are_not_touched():
    c = build_fake_container()
    c.progress_repo.add(1, DAY)
    c.state_machine.start(1, DAY, AT_OFFICE, now=at(DAY, 9))
    c.state_machine.end(1, DAY, now=at(DAY, 17))

    report = c.auto_closer.sweep(now=NEXT_MORNING)

    assert report.closed == []
    assert c.sessions_repo.get(1, DAY).closed_by == ClosedBy.USER


def test_cutoff_before_start_gives_zero_hours():
    c = build_fake_container()
    closer = AutoCloser(c.sessions_repo, c.state_machine, c.reconciler, cutoff="08:00")
    c.state_machine.start(1, DAY, AT_OFFICE, now=at(DAY, 9))

    closer.sweep(now=NEXT_MORNING)

    assert c.sessions_repo.get(1, DAY).end_time == at(DAY, 9)
    assert c.records_repo.get(1, DAY).hours_worked == 0.0


def test_per_session_failure_does_not_stop_the_sweep():
    c = build_fake_container(employees=[make_employee(1), make_employee(2)])
    c.state_machine.start(1, DAY, AT_OFFICE, now=at(DAY, 9))
    c.state_machine.start(2, DAY, AT_OFFICE, now=at(DAY, 9))
    # Employee 1's record keeps conflicting; employee 2 is fine.
    real_save = c.records_repo.save

    def flaky_save(record, *, expected_version):
        if record.employee_id == 1:
            raise ReconciliationConflictError(record.employee_id, record.work_date)
        return real_save(record, expected_version=expected_version)

    c.records_repo.save = flaky_save

    report = c.auto_closer.sweep(now=NEXT_MORNING)

    # Both sessions close; only employee 2 gets its record.
    assert report.closed == [(1, DAY), (2, DAY)]
    assert [key[:2] for key in report.failed] == [(1, DAY)]
    assert c.sessions_repo.get(1, DAY).status == SessionStatus.AUTO_CLOSED
    assert c.records_repo.get(1, DAY) is None
    assert c.records_repo.get(2, DAY) is not None

    c.records_repo.save = real_save
    retry = c.auto_closer.sweep(now=NEXT_MORNING)

    assert retry.closed == []
    assert retry.reconciled == [(1, DAY)]
    assert retry.failed == []
    assert "auto-closed-no-explicit-end" in c.records_repo.get(1, DAY).flag_codes


def test_scheduler_registers_interval_job():
    c = build_fake_container()
    scheduler = build_scheduler(c.auto_closer, interval_minutes=15)

    job = scheduler.get_job(AUTO_CLOSE_JOB_ID)
    assert job is not None
    assert job.trigger.interval.total_seconds() == 15 * 60
    assert scheduler.running is False


def test_ended_day_without_record_is_reconciled_by_next_sweep():
    c = build_fake_container()
    c.progress_repo.add(1, DAY)
    c.state_machine.start(1, DAY, AT_OFFICE, now=at(DAY, 9))
    c.records_repo.fail_next_saves = 99

    closure = c.state_machine.end(1, DAY, now=at(DAY, 17))

    assert closure.session.status == SessionStatus.COMPLETED
    assert closure.record is None
    assert c.records_repo.get(1, DAY) is None

    c.records_repo.fail_next_saves = 0
    report = c.auto_closer.sweep(now=at(DAY, 17, 30))

    assert report.closed == []
    assert report.reconciled == [(1, DAY)]
    assert c.records_repo.get(1, DAY).hours_worked == 8.0
    assert c.auto_closer.sweep(now=at(DAY, 18)).reconciled == []
