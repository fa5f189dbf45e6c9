from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ClosedBy, SessionStatus
from ..geofence.model import Coordinate
from .model import WorkSession


class WorkSessionRepository(Protocol):
    def get(self, employee_id: int, work_date: date) -> Optional[WorkSession]:
        raise NotImplementedError

    def create_in_progress(self, session: WorkSession) -> WorkSession:
        """Atomic check-and-create.

        Raises AlreadyStartedError when a session already exists for the key.
        """
        raise NotImplementedError

    def close(
        self,
        *,
        employee_id: int,
        work_date: date,
        status: SessionStatus,
        end_time: datetime,
        closed_by: ClosedBy,
        end_location: Optional[Coordinate] = None,
    ) -> bool:
        """Move an InProgress session to a closed status.

        Returns False when the session was not InProgress any more.
        """
        raise NotImplementedError

    def list_in_progress_before(self, work_date: date) -> Sequence[WorkSession]:
        raise NotImplementedError

    def list_for_date(self, work_date: date) -> Sequence[WorkSession]:
        raise NotImplementedError

    def list_closed_without_record(self, on_or_before: date) -> Sequence[WorkSession]:
        """Completed or AutoClosed sessions that have no daily attendance record yet."""
        raise NotImplementedError
