from __future__ import annotations

from ...core.enums import AttendanceSource
from ..model import FLAG_IN_PROGRESS, FLAG_INCOMPLETE_PUNCH, FLAG_MISMATCH, DayEvidence, DiscrepancyFlag
from .base import ReconciliationStrategy, RuleOutcome, RuleSettings, fmt_hours


class CombinedStrategy(ReconciliationStrategy):
    """Self-report and punch clock both saw the day.

    The self-reported duration is what gets paid; the punch duration is only
    compared against it.
    """

    def apply(self, evidence: DayEvidence, settings: RuleSettings) -> RuleOutcome:
        session = evidence.session
        punch = evidence.punch
        session_hours = session.session_hours
        biometric_hours = punch.duration_hours
        flags = []

        if session_hours is None:
            flags.append(DiscrepancyFlag(FLAG_IN_PROGRESS))
            hours = biometric_hours or 0.0
        else:
            hours = session_hours

        if biometric_hours is None:
            flags.append(DiscrepancyFlag(FLAG_INCOMPLETE_PUNCH, f"in={punch.in_time.isoformat()}"))

        if session_hours is not None and biometric_hours is not None:
            diff_minutes = abs(session_hours - biometric_hours) * 60
            if diff_minutes > settings.tolerance_minutes:
                flags.append(
                    DiscrepancyFlag(
                        FLAG_MISMATCH,
                        f"self_report={fmt_hours(session_hours)} biometric={fmt_hours(biometric_hours)}",
                    )
                )

        return RuleOutcome(
            is_present=True,
            hours_worked=hours,
            source=AttendanceSource.RECONCILED,
            flags=tuple(flags),
            work_location=session.work_location,
        )
