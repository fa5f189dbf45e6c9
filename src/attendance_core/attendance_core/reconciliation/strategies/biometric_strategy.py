from __future__ import annotations

from ...core.enums import AttendanceSource, WorkLocation
from ..model import FLAG_INCOMPLETE_PUNCH, FLAG_NO_SELF_REPORT, DayEvidence, DiscrepancyFlag
from .base import ReconciliationStrategy, RuleOutcome, RuleSettings


class BiometricStrategy(ReconciliationStrategy):
    """Punch clock only. Punch clocks are installed on site, hence Office."""

    def apply(self, evidence: DayEvidence, settings: RuleSettings) -> RuleOutcome:
        punch = evidence.punch
        flags = [DiscrepancyFlag(FLAG_NO_SELF_REPORT)]
        hours = punch.duration_hours
        if hours is None:
            flags.append(DiscrepancyFlag(FLAG_INCOMPLETE_PUNCH, f"in={punch.in_time.isoformat()}"))
            hours = 0.0
        return RuleOutcome(
            is_present=True,
            hours_worked=hours,
            source=AttendanceSource.BIOMETRIC,
            flags=tuple(flags),
            work_location=WorkLocation.OFFICE,
        )
