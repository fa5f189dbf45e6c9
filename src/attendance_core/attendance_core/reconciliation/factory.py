from __future__ import annotations

from dataclasses import dataclass

from .model import EvidenceKind
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import ReconciliationStrategy
from .strategies.biometric_strategy import BiometricStrategy
from .strategies.combined_strategy import CombinedStrategy
from .strategies.leave_strategy import LeaveStrategy
from .strategies.self_report_strategy import SelfReportStrategy


@dataclass
class ReconciliationStrategyFactory:
    """Factory Pattern: pick the merge rule for the evidence at hand."""

    def for_kind(self, kind: EvidenceKind) -> ReconciliationStrategy:
        if kind == EvidenceKind.LEAVE:
            return LeaveStrategy()
        if kind == EvidenceKind.BOTH:
            return CombinedStrategy()
        if kind == EvidenceKind.SELF_REPORT_ONLY:
            return SelfReportStrategy()
        if kind == EvidenceKind.BIOMETRIC_ONLY:
            return BiometricStrategy()
        return AbsentStrategy()
