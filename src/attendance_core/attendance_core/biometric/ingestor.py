"""
Biometric ingestion: raw punch-clock rows -> one in/out pair per employee per day.

Rows arrive already parsed from the upload (one mapping per spreadsheet row).
Column names vary between devices, so each field is looked up under a few
common aliases. A row carries either an in/out pair or a single punch time.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Mapping, Optional

import structlog

from ..core.exceptions import IngestionRowError
from .model import BiometricPunch, IngestResult
from .repository import DeviceMappingRepository

logger = structlog.get_logger(__name__)

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "device_user_id": ("device_user_id", "employee_id", "emp_id", "enroll_no", "user_id", "badge"),
    "device_id": ("device_id", "device", "terminal_id", "machine_id"),
    "date": ("date", "attendance_date", "work_date", "day"),
    "time_in": ("time_in", "in_time", "check_in", "punch_in", "entry_time"),
    "time_out": ("time_out", "out_time", "check_out", "punch_out", "exit_time"),
    "punch_time": ("punch_time", "timestamp", "datetime"),
}

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%d-%m-%Y", "%m-%d-%Y", "%Y/%m/%d")
TIME_FORMATS = ("%H:%M:%S", "%H:%M", "%I:%M %p", "%I:%M:%S %p", "%H.%M")
DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M")

# Spreadsheet serial dates count days from 1899-12-30.
SPREADSHEET_EPOCH = date(1899, 12, 30)
MAX_SPREADSHEET_SERIAL = (date.max - SPREADSHEET_EPOCH).days

UNKNOWN_DEVICE = "unknown"


def _pick(row: Mapping[str, Any], field: str) -> Any:
    normalized = {str(k).strip().lower().replace(" ", "_").replace("-", "_"): v for k, v in row.items()}
    for alias in COLUMN_ALIASES[field]:
        value = normalized.get(alias)
        if value is not None and value != "":
            return value
    return None


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not 0 <= value <= MAX_SPREADSHEET_SERIAL:
            raise ValueError(f"date serial {value!r} is out of range")
        return SPREADSHEET_EPOCH + timedelta(days=int(value))
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognised date {value!r}")


def parse_time(value: Any, work_date: Optional[date]) -> datetime:
    """Resolve a punch value to a full datetime on work_date."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, time):
        if work_date is None:
            raise ValueError("time without a date")
        return datetime.combine(work_date, value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Spreadsheet time: fraction of a day.
        if work_date is None or not 0 <= value < 1:
            raise ValueError(f"unrecognised time {value!r}")
        return datetime.combine(work_date, time()) + timedelta(seconds=round(float(value) * 86400))

    text = str(value).strip()
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    if work_date is not None:
        for fmt in TIME_FORMATS:
            try:
                return datetime.combine(work_date, datetime.strptime(text.upper(), fmt).time())
            except ValueError:
                continue
    raise ValueError(f"unrecognised time {value!r}")


@dataclass
class _Group:
    device_id: str
    in_time: datetime
    out_time: Optional[datetime]


class BiometricIngestor:
    def __init__(self, mappings: DeviceMappingRepository):
        self._mappings = mappings

    def parse(self, rows: Iterable[Mapping[str, Any]], *, source_file_id: Optional[str] = None) -> IngestResult:
        mapping = self._mappings.load_mappings()
        groups: dict[tuple[int, date], _Group] = {}
        skipped: list[IngestionRowError] = []

        for index, row in enumerate(rows, start=1):
            try:
                employee_id, work_date, device_id, in_time, out_time = self._parse_row(index, row, mapping)
            except IngestionRowError as exc:
                skipped.append(exc)
                continue

            key = (employee_id, work_date)
            group = groups.get(key)
            if group is None:
                groups[key] = _Group(device_id=device_id, in_time=in_time, out_time=out_time)
                continue
            if in_time < group.in_time:
                group.in_time = in_time
                group.device_id = device_id
            if out_time is not None and (group.out_time is None or out_time > group.out_time):
                group.out_time = out_time

        punches = []
        for (employee_id, work_date), group in sorted(groups.items()):
            out_time = group.out_time
            # A lone punch is an arrival with no recorded departure.
            if out_time is not None and out_time <= group.in_time:
                out_time = None
            punches.append(
                BiometricPunch(
                    employee_id=employee_id,
                    work_date=work_date,
                    device_id=group.device_id,
                    in_time=group.in_time,
                    out_time=out_time,
                    source_file_id=source_file_id,
                )
            )

        if skipped:
            logger.warning(
                "biometric_rows_skipped",
                skipped=len(skipped),
                reasons=sorted({s.reason for s in skipped}),
                source_file_id=source_file_id,
            )
        return IngestResult(punches=punches, skipped=skipped)

    def _parse_row(
        self,
        index: int,
        row: Mapping[str, Any],
        mapping: Mapping[tuple[str, str], int],
    ) -> tuple[int, date, str, datetime, Optional[datetime]]:
        if not isinstance(row, Mapping):
            raise IngestionRowError(index, "malformed-row", type(row).__name__)

        device_user_id = _pick(row, "device_user_id")
        if device_user_id is None:
            raise IngestionRowError(index, "missing-employee")
        device_id = str(_pick(row, "device_id") or UNKNOWN_DEVICE).strip()
        device_user_id = str(device_user_id).strip()

        employee_id = mapping.get((device_id, device_user_id))
        if employee_id is None:
            raise IngestionRowError(index, "unmapped-device", f"device={device_id} user={device_user_id}")

        raw_date = _pick(row, "date")
        raw_in = _pick(row, "time_in")
        raw_out = _pick(row, "time_out")
        raw_punch = _pick(row, "punch_time")
        if raw_in is None and raw_punch is None:
            raise IngestionRowError(index, "missing-time-in")

        try:
            work_date = parse_date(raw_date) if raw_date is not None else None
            if raw_in is not None:
                in_time = parse_time(raw_in, work_date)
                out_time = parse_time(raw_out, work_date or in_time.date()) if raw_out is not None else None
            else:
                in_time = parse_time(raw_punch, work_date)
                out_time = in_time
        except (ValueError, OverflowError) as exc:
            raise IngestionRowError(index, "unparseable-timestamp", str(exc))

        if work_date is None:
            work_date = in_time.date()
        if out_time is not None and out_time < in_time:
            raise IngestionRowError(index, "out-before-in", f"in={in_time.isoformat()} out={out_time.isoformat()}")

        return employee_id, work_date, device_id, in_time, out_time
