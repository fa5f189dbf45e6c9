from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_core.attendance_core.core.enums import SessionStatus, WorkLocation
from src.attendance_core.attendance_core.core.exceptions import ValidationError
from src.attendance_core.attendance_core.geofence.model import Coordinate
from tests.fakes import OFFICE, at, build_fake_container, make_employee

DAY = date(2025, 3, 3)
AT_OFFICE = Coordinate(OFFICE.latitude, OFFICE.longitude, 5.0)
AT_HOME = Coordinate(OFFICE.latitude + 0.05, OFFICE.longitude, 5.0)
MAPPINGS = {("dev1", "100"): 1, ("dev1", "200"): 2}


@pytest.fixture()
def c():
    employees = [
        make_employee(1, department="Engineering"),
        make_employee(2, department="Engineering"),
        make_employee(3, department="Sales"),
        make_employee(4, department="Sales"),
    ]
    return build_fake_container(employees=employees, mappings=MAPPINGS)


def test_start_and_end_day_use_todays_date(c):
    svc = c.attendance_service
    session = svc.start_day(1, AT_OFFICE, now=at(DAY, 9))
    c.progress_repo.add(1, DAY)
    closure = svc.end_day(1, now=at(DAY, 17, 30))

    assert session.work_date == DAY
    assert closure.session.status == SessionStatus.COMPLETED
    assert closure.record.hours_worked == 8.5


def test_unknown_employee_cannot_start(c):
    with pytest.raises(ValidationError):
        c.attendance_service.start_day(99, AT_OFFICE, now=at(DAY, 9))


def test_live_attendance_snapshot_with_filters(c):
    svc = c.attendance_service
    svc.start_day(1, AT_OFFICE, now=at(DAY, 9))
    svc.start_day(2, AT_HOME, work_location=WorkLocation.HOME, now=at(DAY, 9, 30))
    c.progress_repo.add(2, DAY)
    svc.end_day(2, now=at(DAY, 12))
    c.leaves_repo.add(3, DAY, DAY)

    snapshot = svc.get_live_attendance(DAY, now=at(DAY, 13))

    assert snapshot["total"] == 4
    assert snapshot["counts"]["InProgress"] == 1
    assert snapshot["counts"]["Completed"] == 1
    assert snapshot["counts"]["OnLeave"] == 1
    assert snapshot["counts"]["NotStarted"] == 1
    by_id = {row["employee_id"]: row for row in snapshot["employees"]}
    assert by_id[1]["hours"] == 4.0
    assert by_id[2]["work_location"] == "Home"
    assert by_id[2]["discrepancy_flags"] == ["no-biometric-punch"]
    assert by_id[1]["discrepancy_flags"] == []
    assert by_id[4]["start_time"] is None

    sales = svc.get_live_attendance(DAY, department="Sales", now=at(DAY, 13))
    assert [r["employee_id"] for r in sales["employees"]] == [3, 4]

    working = svc.get_live_attendance(DAY, status=SessionStatus.IN_PROGRESS, now=at(DAY, 13))
    assert [r["employee_id"] for r in working["employees"]] == [1]

    at_home = svc.get_live_attendance(DAY, work_location=WorkLocation.HOME, now=at(DAY, 13))
    assert [r["employee_id"] for r in at_home["employees"]] == [2]


def test_upload_biometric_reports_counts_and_reconciles(c):
    svc = c.attendance_service
    svc.start_day(1, AT_OFFICE, now=at(DAY, 9))
    c.progress_repo.add(1, DAY)
    svc.end_day(1, now=at(DAY, 17))

    summary = svc.upload_biometric(
        [
            {"employee_id": "100", "device_id": "dev1", "date": "2025-03-03", "time_in": "09:30", "time_out": "16:00"},
            {"employee_id": "200", "device_id": "dev1", "date": "2025-03-03", "time_in": "08:00", "time_out": "16:00"},
            {"employee_id": "999", "device_id": "dev1", "date": "2025-03-03", "time_in": "08:00"},
        ],
        source_file_id="upload-1",
    )

    assert summary["processed"] == 2
    assert summary["skipped"] == 1
    assert summary["errors"] == [{"row": 3, "reason": "unmapped-device", "detail": "device=dev1 user=999"}]
    assert summary["employees"] == [1, 2]
    assert summary["date_range"] == {"start": "2025-03-03", "end": "2025-03-03"}

    record = c.records_repo.get(1, DAY)
    assert record.flag_codes == ["self-report-biometric-mismatch"]
    assert record.hours_worked == 8.0
    assert c.records_repo.get(2, DAY).flag_codes == ["no-self-report"]


def test_upload_keeps_going_when_one_reconcile_crashes(c):
    c.records_repo.broken_keys.add((1, DAY))

    summary = c.attendance_service.upload_biometric(
        [
            {"employee_id": "100", "device_id": "dev1", "date": "2025-03-03", "time_in": "09:00", "time_out": "17:00"},
            {"employee_id": "200", "device_id": "dev1", "date": "2025-03-03", "time_in": "08:00", "time_out": "16:00"},
        ]
    )

    assert summary["processed"] == 2
    assert summary["reconciled"] == 1
    assert summary["errors"] == [
        {"employee_id": 1, "date": "2025-03-03", "reason": "reconcile_failed", "detail": "storage unavailable"}
    ]
    assert c.records_repo.get(1, DAY) is None
    assert c.records_repo.get(2, DAY).flag_codes == ["no-self-report"]

def test_upload_rejects_non_list(c):
    with pytest.raises(ValidationError):
        c.attendance_service.upload_biometric({"rows": []})


def test_run_auto_close_through_service(c):
    c.attendance_service.start_day(1, AT_OFFICE, now=at(DAY, 9))
    report = c.attendance_service.run_auto_close(now=datetime(2025, 3, 4, 1, 0))
    assert report.to_dict()["closed"] == [{"employee_id": 1, "date": "2025-03-03"}]
