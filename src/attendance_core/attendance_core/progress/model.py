from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class ProgressEntry:
    """A daily progress note owned by the progress-tracking subsystem."""

    entry_id: int
    employee_id: int
    work_date: date
    notes: Optional[str] = None
    achievements: Optional[str] = None
    blockers: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def has_content(self) -> bool:
        return any((text or "").strip() for text in (self.notes, self.achievements, self.blockers))
