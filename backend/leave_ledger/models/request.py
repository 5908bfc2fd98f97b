# ruff: noqa: TC003
from __future__ import annotations

from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import CreatedAtMixin
from leave_ledger.models.enums import RequestStatus


class LeaveRequest(CreatedAtMixin, table=True):
    """A single leave submission with its frozen day count and decision state."""

    __tablename__ = "leave_request"
    __table_args__ = (sa.Index("ix_leave_request_person_status", "person_id", "status"),)

    id: int | None = Field(default=None, primary_key=True)
    person_id: str = Field(index=True, max_length=255)
    leave_type: str = Field(max_length=50)
    start_date: date
    end_date: date
    requested_days: int
    reason: str | None = None
    status: str = Field(
        default=RequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "pending"}
    )

    # Whoever resolved the request, including the owner for auto-approved sick leave.
    decided_by: str | None = Field(default=None, max_length=255)
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]

    # Role-specific decision slots.
    manager_decided_by: str | None = Field(default=None, max_length=255)
    manager_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    admin_decided_by: str | None = Field(default=None, max_length=255)
    admin_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]

    rejected_by: str | None = Field(default=None, max_length=255)
    rejected_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejection_reason: str | None = None
