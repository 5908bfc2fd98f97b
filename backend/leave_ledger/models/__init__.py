from sqlmodel import SQLModel

from leave_ledger.models.audit import AuditLog
from leave_ledger.models.balance import LeaveBalance
from leave_ledger.models.base import CreatedAtMixin, UUIDKeyModel, utc_now
from leave_ledger.models.enums import (
    AuditAction,
    LeaveType,
    RequestStatus,
    Role,
    ValidationErrorCode,
)
from leave_ledger.models.request import LeaveRequest

__all__ = [
    "AuditAction",
    "AuditLog",
    "CreatedAtMixin",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveType",
    "RequestStatus",
    "Role",
    "SQLModel",
    "UUIDKeyModel",
    "ValidationErrorCode",
    "utc_now",
]
