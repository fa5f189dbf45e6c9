from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import hours_between
from ..core.exceptions import IngestionRowError


@dataclass(frozen=True)
class BiometricPunch:
    """Earliest in / latest out of one employee on one day, as seen by the punch clock."""

    employee_id: int
    work_date: date
    device_id: str
    in_time: datetime
    out_time: Optional[datetime]
    source_file_id: Optional[str] = None

    @property
    def key(self) -> tuple[int, date]:
        return self.employee_id, self.work_date

    @property
    def duration_hours(self) -> Optional[float]:
        if self.out_time is None:
            return None
        return hours_between(self.in_time, self.out_time)


@dataclass(frozen=True)
class IngestResult:
    punches: list[BiometricPunch] = field(default_factory=list)
    skipped: list[IngestionRowError] = field(default_factory=list)

    @property
    def date_range(self) -> tuple[Optional[date], Optional[date]]:
        if not self.punches:
            return None, None
        dates = [p.work_date for p in self.punches]
        return min(dates), max(dates)

    @property
    def employee_ids(self) -> list[int]:
        return sorted({p.employee_id for p in self.punches})
