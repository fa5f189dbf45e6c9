from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import AttendanceSource, WorkLocation
from ..model import DayEvidence, DiscrepancyFlag


@dataclass(frozen=True)
class RuleOutcome:
    is_present: bool
    hours_worked: float
    source: AttendanceSource
    flags: tuple[DiscrepancyFlag, ...] = ()
    work_location: Optional[WorkLocation] = None
    # Leave pre-empts everything; no session-level checks run after it.
    final: bool = False


@dataclass(frozen=True)
class RuleSettings:
    tolerance_minutes: int
    location_drift_m: float


class ReconciliationStrategy(ABC):
    """Strategy Pattern: one merge rule per combination of available evidence."""

    @abstractmethod
    def apply(self, evidence: DayEvidence, settings: RuleSettings) -> RuleOutcome:
        raise NotImplementedError


def fmt_hours(hours: Optional[float]) -> str:
    return "n/a" if hours is None else f"{hours:.2f}h"
