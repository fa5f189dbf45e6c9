from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

import structlog

from ..common.datetime_utils import parse_clock_time
from ..core.constants import DEFAULT_AUTO_CLOSE_CUTOFF
from ..core.exceptions import DomainError
from ..sessions.repository import WorkSessionRepository
from ..sessions.state_machine import Reconciler, SessionStateMachine

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SweepReport:
    closed: list[tuple[int, date]] = field(default_factory=list)
    skipped: list[tuple[int, date]] = field(default_factory=list)
    reconciled: list[tuple[int, date]] = field(default_factory=list)
    failed: list[tuple[int, date, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "closed": [{"employee_id": e, "date": d.isoformat()} for e, d in self.closed],
            "skipped": [{"employee_id": e, "date": d.isoformat()} for e, d in self.skipped],
            "reconciled": [{"employee_id": e, "date": d.isoformat()} for e, d in self.reconciled],
            "failed": [{"employee_id": e, "date": d.isoformat(), "error": msg} for e, d, msg in self.failed],
        }


class AutoCloser:
    """Closes sessions still InProgress after their day has passed.

    Safe to run repeatedly: a session closed meanwhile (by its owner or by an
    earlier sweep) is skipped. Each sweep also reconciles closed days that
    ended up without a daily record.
    """

    def __init__(
        self,
        sessions: WorkSessionRepository,
        state_machine: SessionStateMachine,
        reconciler: Reconciler,
        *,
        cutoff: str = DEFAULT_AUTO_CLOSE_CUTOFF,
    ):
        self._sessions = sessions
        self._state_machine = state_machine
        self._reconciler = reconciler
        self._cutoff: time = parse_clock_time(cutoff)

    def cutoff_for(self, work_date: date) -> datetime:
        return datetime.combine(work_date, self._cutoff)

    def sweep(self, *, now: Optional[datetime] = None) -> SweepReport:
        now = now or datetime.now()
        report = SweepReport()
        stale = self._sessions.list_in_progress_before(now.date())

        for session in stale:
            key = (session.employee_id, session.work_date)
            try:
                closure = self._state_machine.auto_close(
                    session.employee_id,
                    session.work_date,
                    self.cutoff_for(session.work_date),
                    now=now,
                )
            except DomainError as exc:
                logger.warning(
                    "auto_close_failed",
                    employee_id=session.employee_id,
                    work_date=session.work_date.isoformat(),
                    error=str(exc),
                )
                report.failed.append(key + (str(exc),))
                continue
            except Exception as exc:
                logger.exception(
                    "auto_close_crashed",
                    employee_id=session.employee_id,
                    work_date=session.work_date.isoformat(),
                )
                report.failed.append(key + (str(exc),))
                continue

            if closure is None:
                report.skipped.append(key)
            else:
                report.closed.append(key)

        self._reconcile_pending(report, now)

        logger.info(
            "auto_close_sweep_finished",
            candidates=len(stale),
            closed=len(report.closed),
            skipped=len(report.skipped),
            reconciled=len(report.reconciled),
            failed=len(report.failed),
        )
        return report

    def _reconcile_pending(self, report: SweepReport, now: datetime) -> None:
        for session in self._sessions.list_closed_without_record(now.date()):
            key = (session.employee_id, session.work_date)
            try:
                self._reconciler.reconcile(session.employee_id, session.work_date, now=now)
            except Exception as exc:
                logger.exception(
                    "pending_reconcile_failed",
                    employee_id=session.employee_id,
                    work_date=session.work_date.isoformat(),
                )
                report.failed.append(key + (str(exc),))
                continue
            report.reconciled.append(key)
