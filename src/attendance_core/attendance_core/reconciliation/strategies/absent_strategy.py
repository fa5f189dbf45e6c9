from __future__ import annotations

from ...core.enums import AttendanceSource
from ..model import DayEvidence
from .base import ReconciliationStrategy, RuleOutcome, RuleSettings


class AbsentStrategy(ReconciliationStrategy):
    """No evidence at all and no leave.

    Recorded under SelfReport, the channel the employee was expected to use.
    """

    def apply(self, evidence: DayEvidence, settings: RuleSettings) -> RuleOutcome:
        return RuleOutcome(is_present=False, hours_worked=0.0, source=AttendanceSource.SELF_REPORT)
