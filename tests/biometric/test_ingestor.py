from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_core.attendance_core.biometric.ingestor import BiometricIngestor, parse_date, parse_time
from tests.fakes import InMemoryDeviceMappings

MAPPINGS = {("dev1", "100"): 1, ("dev1", "200"): 2, ("dev2", "100"): 1, ("unknown", "300"): 3}


def _ingestor() -> BiometricIngestor:
    return BiometricIngestor(InMemoryDeviceMappings(MAPPINGS))


def test_in_out_row_becomes_one_punch():
    result = _ingestor().parse(
        [{"Employee ID": "100", "device_id": "dev1", "Date": "2025-03-03", "Time In": "09:00", "Time Out": "17:30"}],
        source_file_id="march.xlsx",
    )

    assert result.skipped == []
    [punch] = result.punches
    assert punch.employee_id == 1
    assert punch.work_date == date(2025, 3, 3)
    assert punch.in_time == datetime(2025, 3, 3, 9, 0)
    assert punch.out_time == datetime(2025, 3, 3, 17, 30)
    assert punch.duration_hours == pytest.approx(8.5)
    assert punch.source_file_id == "march.xlsx"


def test_single_punch_rows_fold_to_earliest_in_latest_out():
    rows = [
        {"user_id": "100", "device": "dev1", "timestamp": "2025-03-03 08:55:00"},
        {"user_id": "100", "device": "dev2", "timestamp": "2025-03-03 12:30:00"},
        {"user_id": "100", "device": "dev2", "timestamp": "2025-03-03 17:05:00"},
    ]
    [punch] = _ingestor().parse(rows).punches

    assert punch.in_time == datetime(2025, 3, 3, 8, 55)
    assert punch.out_time == datetime(2025, 3, 3, 17, 5)
    assert punch.device_id == "dev1"


def test_lone_punch_has_no_out_time():
    [punch] = _ingestor().parse([{"user_id": "100", "device_id": "dev1", "punch_time": "2025-03-03T09:00:00"}]).punches

    assert punch.out_time is None
    assert punch.duration_hours is None


def test_bad_rows_are_skipped_with_reasons():
    rows = [
        {"device_id": "dev1", "date": "2025-03-03", "time_in": "09:00"},
        {"employee_id": "999", "device_id": "dev1", "date": "2025-03-03", "time_in": "09:00"},
        {"employee_id": "100", "device_id": "dev1", "date": "2025-03-03"},
        {"employee_id": "100", "device_id": "dev1", "date": "yesterday", "time_in": "09:00"},
        {"employee_id": "100", "device_id": "dev1", "date": "2025-03-03", "time_in": "17:00", "time_out": "09:00"},
        "not a row",
        {"employee_id": "200", "device_id": "dev1", "date": "2025-03-04", "time_in": "09:00", "time_out": "18:00"},
    ]
    result = _ingestor().parse(rows)

    assert [(s.row_index, s.reason) for s in result.skipped] == [
        (1, "missing-employee"),
        (2, "unmapped-device"),
        (3, "missing-time-in"),
        (4, "unparseable-timestamp"),
        (5, "out-before-in"),
        (6, "malformed-row"),
    ]
    assert [p.employee_id for p in result.punches] == [2]
    assert result.date_range == (date(2025, 3, 4), date(2025, 3, 4))
    assert result.employee_ids == [2]


def test_row_without_device_uses_unknown_device_mapping():
    result = _ingestor().parse([{"emp_id": 300, "date": "03/03/2025", "check_in": "9:15 am", "check_out": "5:45 pm"}])

    [punch] = result.punches
    assert punch.employee_id == 3
    assert punch.in_time == datetime(2025, 3, 3, 9, 15)
    assert punch.out_time == datetime(2025, 3, 3, 17, 45)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2025-03-03", date(2025, 3, 3)),
        ("03/15/2025", date(2025, 3, 15)),
        ("15-03-2025", date(2025, 3, 15)),
        ("2025/03/03", date(2025, 3, 3)),
        (45719, date(2025, 3, 3)),
        (datetime(2025, 3, 3, 10, 0), date(2025, 3, 3)),
    ],
)
def test_parse_date_formats(raw, expected):
    assert parse_date(raw) == expected


def test_parse_time_spreadsheet_fraction_and_dotted():
    d = date(2025, 3, 3)
    assert parse_time(0.375, d) == datetime(2025, 3, 3, 9, 0)
    assert parse_time("17.30", d) == datetime(2025, 3, 3, 17, 30)
    with pytest.raises(ValueError):
        parse_time("09:00", None)


@pytest.mark.parametrize("serial", [3000000, -1000000, float("inf"), float("nan")])
def test_out_of_range_date_serial_is_skipped_not_fatal(serial):
    rows = [
        {"user_id": "100", "device_id": "dev1", "date": "2025-03-03", "time_in": "09:00", "time_out": "17:00"},
        {"user_id": "200", "device_id": "dev1", "date": serial, "time_in": "09:00", "time_out": "17:00"},
    ]
    result = _ingestor().parse(rows)

    [punch] = result.punches
    assert punch.employee_id == 1
    [skipped] = result.skipped
    assert skipped.row_index == 2
    assert skipped.reason == "unparseable-timestamp"
