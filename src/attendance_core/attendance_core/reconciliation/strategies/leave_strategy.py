from __future__ import annotations

from ...core.enums import AttendanceSource
from ..model import DayEvidence
from .base import ReconciliationStrategy, RuleOutcome, RuleSettings


class LeaveStrategy(ReconciliationStrategy):
    """Approved leave: not present, no hours."""

    def apply(self, evidence: DayEvidence, settings: RuleSettings) -> RuleOutcome:
        return RuleOutcome(is_present=False, hours_worked=0.0, source=AttendanceSource.LEAVE, final=True)
