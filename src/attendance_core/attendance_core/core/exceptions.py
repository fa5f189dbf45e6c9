from __future__ import annotations

from datetime import date
from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is malformed or violates domain rules."""

    code = "validation_error"


class SessionStateError(DomainError):
    """A start/end request that is not valid for the current session state.

    All subclasses are client-correctable; their message is shown verbatim.
    """

    code = "session_state_error"


class LocationRequiredError(SessionStateError):
    code = "location_required"

    def __init__(self, distance_m: Optional[float] = None, radius_m: Optional[float] = None):
        self.distance_m = distance_m
        self.radius_m = radius_m
        if distance_m is not None and radius_m is not None:
            message = (
                f"You are {distance_m:.0f}m from the nearest office (allowed {radius_m:.0f}m). "
                "Select Home or Remote to start your day."
            )
        else:
            message = "You are not at an office. Select Home or Remote to start your day."
        super().__init__(message)


class AlreadyStartedError(SessionStateError):
    code = "already_started"

    def __init__(self, employee_id: int, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(f"Your day for {work_date.isoformat()} has already been started.")


class NotStartedError(SessionStateError):
    code = "not_started"

    def __init__(self, employee_id: int, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(f"Start your day for {work_date.isoformat()} before ending it.")


class AlreadyEndedError(SessionStateError):
    code = "already_ended"

    def __init__(self, employee_id: int, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(f"Your day for {work_date.isoformat()} has already ended.")


class ProgressRequiredError(SessionStateError):
    code = "progress_required"

    def __init__(self, employee_id: int, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__("Submit today's progress before ending your day.")


class OnLeaveError(SessionStateError):
    code = "on_leave"

    def __init__(self, employee_id: int, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(f"You are on approved leave on {work_date.isoformat()}; there is no day to start.")


class IngestionRowError(DomainError):
    """One raw punch row that could not be ingested. Collected, not raised."""

    code = "ingestion_row_error"

    def __init__(self, row_index: int, reason: str, detail: str = ""):
        self.row_index = row_index
        self.reason = reason
        self.detail = detail
        super().__init__(f"row {row_index}: {reason}" + (f" ({detail})" if detail else ""))


class ReconciliationConflictError(DomainError):
    """Concurrent write to the same daily record. Transient."""

    code = "reconciliation_conflict"

    def __init__(self, employee_id: int, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(f"Concurrent update of attendance for employee {employee_id} on {work_date.isoformat()}")


class CalculationError(DomainError):
    """Salary could not be computed for one employee."""

    code = "calculation_error"

    def __init__(self, employee_id: int, message: str):
        self.employee_id = employee_id
        super().__init__(message)
