# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class AuditLogEntryResponse(BaseModel):
    """Response schema for a single audit log entry."""

    id: uuid.UUID
    actor_id: str
    action: str
    details: str | None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated list of audit log entries."""

    items: list[AuditLogEntryResponse]
    total: int


class PersonLeaveReport(BaseModel):
    """Yearly leave summary for one person."""

    person_id: str
    total_days: int
    used_days: int
    pending_days: int
    carried_over_days: int
    remaining_days: int
    requests_this_year: int
    approved_requests: int
    rejected_requests: int


class LeaveReportResponse(BaseModel):
    """Leave summary across every person with a stored balance."""

    year: int
    items: list[PersonLeaveReport]
    total: int
