"""
Per-employee, per-day workday state machine.

    NotStarted --start--> InProgress --end--> Completed
                             |
                             +--auto_close--> AutoClosed

OnLeave is derived (approved leave covering the date and no session); it is
never stored and has no transitions out of it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Protocol

import structlog

from ..core.enums import ClosedBy, SessionStatus, WorkLocation
from ..core.exceptions import (
    AlreadyEndedError,
    LocationRequiredError,
    NotStartedError,
    OnLeaveError,
    ProgressRequiredError,
    ValidationError,
)
from ..events.model import EventType, StateChangeEvent
from ..events.publisher import EventPublisher
from ..geofence.model import Coordinate
from ..geofence.validator import GeofenceValidator, check_coordinate
from ..leave.repository import LeaveRepository, find_approved_leave
from ..progress.gate import ProgressGate
from .model import WorkSession
from .repository import WorkSessionRepository

logger = structlog.get_logger(__name__)


class Reconciler(Protocol):
    def reconcile(self, employee_id: int, work_date: date, *, now: Optional[datetime] = None):
        raise NotImplementedError


@dataclass(frozen=True)
class DayClosure:
    """A closed session together with the daily record derived from it.

    record is None when reconciliation failed after the close was committed;
    the auto-close sweep reconciles such days later.
    """

    session: WorkSession
    record: Optional[object]


class SessionStateMachine:
    def __init__(
        self,
        sessions: WorkSessionRepository,
        geofence: GeofenceValidator,
        progress_gate: ProgressGate,
        leaves: LeaveRepository,
        reconciler: Reconciler,
        events: EventPublisher,
    ):
        self._sessions = sessions
        self._geofence = geofence
        self._progress_gate = progress_gate
        self._leaves = leaves
        self._reconciler = reconciler
        self._events = events

    def status(self, employee_id: int, work_date: date) -> SessionStatus:
        session = self._sessions.get(employee_id, work_date)
        if session is not None:
            return session.status
        if find_approved_leave(self._leaves, employee_id, work_date) is not None:
            return SessionStatus.ON_LEAVE
        return SessionStatus.NOT_STARTED

    def _resolve_work_location(
        self,
        location: Coordinate,
        asserted: Optional[WorkLocation],
    ):
        result = self._geofence.validate(location)
        if result.within_radius:
            return WorkLocation.OFFICE, result
        if result.nearest_site_id is None:
            # No registered offices: nothing to contradict the employee.
            return (asserted if asserted in (WorkLocation.HOME, WorkLocation.REMOTE) else WorkLocation.REMOTE), result
        if asserted in (WorkLocation.HOME, WorkLocation.REMOTE):
            return asserted, result
        raise LocationRequiredError(distance_m=result.distance_m, radius_m=result.radius_m)

    def start(
        self,
        employee_id: int,
        work_date: date,
        location: Optional[Coordinate],
        *,
        work_location: Optional[WorkLocation] = None,
        now: Optional[datetime] = None,
    ) -> WorkSession:
        now = now or datetime.now()
        if location is None:
            raise ValidationError("Location is required to start your day")

        if find_approved_leave(self._leaves, employee_id, work_date) is not None:
            raise OnLeaveError(employee_id, work_date)

        resolved, result = self._resolve_work_location(location, work_location)
        session = WorkSession(
            employee_id=employee_id,
            work_date=work_date,
            status=SessionStatus.IN_PROGRESS,
            start_time=now,
            start_location=location,
            work_location=resolved,
            site_id=result.nearest_site_id if result.within_radius else None,
            low_confidence_location=result.low_confidence,
        )
        # Raises AlreadyStartedError when another start won the race.
        self._sessions.create_in_progress(session)

        logger.info(
            "day_started",
            employee_id=employee_id,
            work_date=work_date.isoformat(),
            work_location=resolved.value,
            distance_m=result.distance_m,
            low_confidence=result.low_confidence,
        )
        self._publish(
            EventType.DAY_STARTED,
            session,
            now,
            work_location=resolved.value,
            site_id=session.site_id,
        )
        return session

    def end(
        self,
        employee_id: int,
        work_date: date,
        location: Optional[Coordinate] = None,
        *,
        now: Optional[datetime] = None,
    ) -> DayClosure:
        now = now or datetime.now()
        if location is not None:
            check_coordinate(location)

        current = self._sessions.get(employee_id, work_date)
        if current is None:
            raise NotStartedError(employee_id, work_date)
        if current.status != SessionStatus.IN_PROGRESS:
            raise AlreadyEndedError(employee_id, work_date)
        if not self._progress_gate.check(employee_id, work_date):
            raise ProgressRequiredError(employee_id, work_date)

        end_time = max(now, current.start_time)
        closed = self._sessions.close(
            employee_id=employee_id,
            work_date=work_date,
            status=SessionStatus.COMPLETED,
            end_time=end_time,
            closed_by=ClosedBy.USER,
            end_location=location,
        )
        if not closed:
            # The auto-closer (or a second end) got there first.
            raise AlreadyEndedError(employee_id, work_date)

        session = self._sessions.get(employee_id, work_date)
        logger.info(
            "day_ended",
            employee_id=employee_id,
            work_date=work_date.isoformat(),
            session_hours=session.session_hours,
        )
        self._publish(EventType.DAY_ENDED, session, now, session_hours=session.session_hours)
        record = self._reconcile_closed(session)
        return DayClosure(session=session, record=record)

    def auto_close(
        self,
        employee_id: int,
        work_date: date,
        cutoff_time: datetime,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[DayClosure]:
        """Close a session left InProgress past its date.

        Returns None when the session is no longer InProgress (ended by the
        user meanwhile, or already auto-closed).
        """
        now = now or datetime.now()
        if work_date >= now.date():
            raise ValidationError("Only sessions from previous days can be auto-closed")

        current = self._sessions.get(employee_id, work_date)
        if current is None or current.status != SessionStatus.IN_PROGRESS:
            return None

        end_time = max(cutoff_time, current.start_time)
        closed = self._sessions.close(
            employee_id=employee_id,
            work_date=work_date,
            status=SessionStatus.AUTO_CLOSED,
            end_time=end_time,
            closed_by=ClosedBy.AUTO_CLOSER,
        )
        if not closed:
            return None

        session = self._sessions.get(employee_id, work_date)
        logger.info(
            "day_auto_closed",
            employee_id=employee_id,
            work_date=work_date.isoformat(),
            end_time=end_time.isoformat(),
        )
        self._publish(EventType.DAY_AUTO_CLOSED, session, now, end_time=end_time.isoformat())
        record = self._reconcile_closed(session)
        return DayClosure(session=session, record=record)

    def _reconcile_closed(self, session: WorkSession):
        # The close is committed; days left without a record are picked up by the sweep.
        try:
            return self._reconciler.reconcile(session.employee_id, session.work_date)
        except Exception:
            logger.exception(
                "reconcile_after_close_failed",
                employee_id=session.employee_id,
                work_date=session.work_date.isoformat(),
                status=session.status.value,
            )
            return None

    def _publish(self, event_type: EventType, session: WorkSession, now: datetime, **payload) -> None:
        self._events.publish(
            StateChangeEvent(
                type=event_type,
                employee_id=session.employee_id,
                work_date=session.work_date,
                new_status=session.status.value,
                occurred_at=now,
                payload=payload,
            )
        )
