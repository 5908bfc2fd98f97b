from __future__ import annotations

import enum


class Role(enum.StrEnum):
    """Roles supplied by the identity provider."""

    USER = "user"
    PM = "pm"
    ADMIN = "admin"


class LeaveType(enum.StrEnum):
    """Kind of leave being requested."""

    VACATION = "vacation"
    SICK_LEAVE = "sick-leave"


class RequestStatus(enum.StrEnum):
    """State machine for leave requests. APPROVED and REJECTED are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ValidationErrorCode(enum.StrEnum):
    """Reason a leave request failed the admission rules."""

    INVALID_DATE = "InvalidDate"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_NOTICE = "InsufficientNotice"
    LATE_SUBMISSION = "LateSubmission"
    EXCEEDS_MAXIMUM = "ExceedsMaximum"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE_REQUEST = "CREATE_REQUEST"
    APPROVE_REQUEST = "APPROVE_REQUEST"
    REJECT_REQUEST = "REJECT_REQUEST"
    UPDATE_BALANCE = "UPDATE_BALANCE"
