from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle of one employee's workday."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    AUTO_CLOSED = "AutoClosed"
    ON_LEAVE = "OnLeave"


class WorkLocation(str, Enum):
    OFFICE = "Office"
    HOME = "Home"
    REMOTE = "Remote"


class ClosedBy(str, Enum):
    USER = "User"
    AUTO_CLOSER = "AutoCloser"


class AttendanceSource(str, Enum):
    """Which evidence a daily record was derived from.

    A day with no evidence at all is recorded as SelfReport with is_present
    False: attendance is self-reported, and nothing was reported.
    """

    SELF_REPORT = "SelfReport"
    BIOMETRIC = "Biometric"
    RECONCILED = "Reconciled"
    LEAVE = "Leave"


class LeaveStatus(str, Enum):
    """Approval state of a leave record (owned by the leave subsystem)."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Severity(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class PayComponentKind(str, Enum):
    ALLOWANCE = "allowance"
    DEDUCTION = "deduction"
