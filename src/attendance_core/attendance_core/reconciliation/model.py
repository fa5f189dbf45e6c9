from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from ..biometric.model import BiometricPunch
from ..core.enums import AttendanceSource, WorkLocation
from ..leave.model import LeaveRecord
from ..sessions.model import WorkSession

# Discrepancy flag codes.
FLAG_MISMATCH = "self-report-biometric-mismatch"
FLAG_NO_BIOMETRIC = "no-biometric-punch"
FLAG_NO_SELF_REPORT = "no-self-report"
FLAG_AUTO_CLOSED = "auto-closed-no-explicit-end"
FLAG_INCOMPLETE_PUNCH = "incomplete-biometric-punch"
FLAG_IN_PROGRESS = "session-in-progress"
FLAG_LOW_CONFIDENCE = "low-confidence-location"
FLAG_LOCATION_DRIFT = "start-end-location-drift"


@dataclass(frozen=True, order=True)
class DiscrepancyFlag:
    code: str
    detail: str = ""

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.detail}


@dataclass(frozen=True)
class DailyAttendanceRecord:
    """The authoritative attendance of one employee on one day.

    version is storage bookkeeping for optimistic concurrency and does not take
    part in equality: two runs over the same evidence compare equal.
    """

    employee_id: int
    work_date: date
    is_present: bool
    hours_worked: float
    source: AttendanceSource
    flags: tuple[DiscrepancyFlag, ...] = ()
    work_location: Optional[WorkLocation] = None
    session_hours: Optional[float] = None
    biometric_hours: Optional[float] = None
    version: int = field(default=0, compare=False)

    @property
    def key(self) -> tuple[int, date]:
        return self.employee_id, self.work_date

    @property
    def flag_codes(self) -> list[str]:
        return [f.code for f in self.flags]

    def has_flag(self, code: str) -> bool:
        return any(f.code == code for f in self.flags)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat(),
            "is_present": self.is_present,
            "hours_worked": self.hours_worked,
            "source": self.source.value,
            "discrepancy_flags": [f.to_dict() for f in self.flags],
            "work_location": self.work_location.value if self.work_location else None,
            "session_hours": self.session_hours,
            "biometric_hours": self.biometric_hours,
        }


class EvidenceKind(str, Enum):
    LEAVE = "leave"
    BOTH = "both"
    SELF_REPORT_ONLY = "self-report-only"
    BIOMETRIC_ONLY = "biometric-only"
    NONE = "none"


@dataclass(frozen=True)
class DayEvidence:
    """Everything known about one (employee_id, work_date), tagged by which sources are present."""

    employee_id: int
    work_date: date
    session: Optional[WorkSession] = None
    punch: Optional[BiometricPunch] = None
    leave: Optional[LeaveRecord] = None

    @property
    def kind(self) -> EvidenceKind:
        if self.leave is not None and self.leave.is_approved and self.leave.covers(self.work_date):
            return EvidenceKind.LEAVE
        if self.session is not None and self.punch is not None:
            return EvidenceKind.BOTH
        if self.session is not None:
            return EvidenceKind.SELF_REPORT_ONLY
        if self.punch is not None:
            return EvidenceKind.BIOMETRIC_ONLY
        return EvidenceKind.NONE
