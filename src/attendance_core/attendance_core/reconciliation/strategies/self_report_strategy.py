from __future__ import annotations

from ...core.enums import AttendanceSource
from ..model import FLAG_IN_PROGRESS, FLAG_NO_BIOMETRIC, DayEvidence, DiscrepancyFlag
from .base import ReconciliationStrategy, RuleOutcome, RuleSettings


class SelfReportStrategy(ReconciliationStrategy):
    """Only the employee's start/end; no punch to compare with."""

    def apply(self, evidence: DayEvidence, settings: RuleSettings) -> RuleOutcome:
        session = evidence.session
        flags = [DiscrepancyFlag(FLAG_NO_BIOMETRIC)]
        hours = session.session_hours
        if hours is None:
            flags.append(DiscrepancyFlag(FLAG_IN_PROGRESS))
            hours = 0.0
        return RuleOutcome(
            is_present=True,
            hours_worked=hours,
            source=AttendanceSource.SELF_REPORT,
            flags=tuple(flags),
            work_location=session.work_location,
        )
