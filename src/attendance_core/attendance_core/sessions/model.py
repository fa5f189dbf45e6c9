from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import hours_between
from ..core.enums import ClosedBy, SessionStatus, WorkLocation
from ..geofence.model import Coordinate


@dataclass(frozen=True)
class WorkSession:
    """Self-reported workday, keyed by (employee_id, work_date)."""

    employee_id: int
    work_date: date
    status: SessionStatus
    start_time: datetime
    start_location: Coordinate
    work_location: WorkLocation
    end_time: Optional[datetime] = None
    end_location: Optional[Coordinate] = None
    closed_by: Optional[ClosedBy] = None
    site_id: Optional[str] = None
    low_confidence_location: bool = False

    @property
    def key(self) -> tuple[int, date]:
        return self.employee_id, self.work_date

    @property
    def session_hours(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return hours_between(self.start_time, self.end_time)
