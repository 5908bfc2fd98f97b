# ruff: noqa: TC001, TC003
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from leave_ledger.models.enums import LeaveType, RequestStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateRequestPayload(BaseModel):
    """Request body for submitting a new leave request.

    Date ordering is checked by the admission rules, not here, so that a
    reversed range is reported as ``InvalidDate`` like every other rule.
    """

    model_config = ConfigDict(populate_by_name=True)

    leave_type: LeaveType = Field(default=LeaveType.VACATION, alias="type")
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)


class DecisionPayload(BaseModel):
    """Request body for a manager/admin decision."""

    approved: bool
    reason: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class DecisionStamp(BaseModel):
    """Who filled a decision slot, and when."""

    actor_id: str
    decided_at: datetime


class RequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: int
    person_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    requested_days: int
    reason: str | None
    status: RequestStatus
    decided_by: str | None
    decided_at: datetime | None
    manager_decision: DecisionStamp | None
    admin_decision: DecisionStamp | None
    rejected_by: str | None
    rejected_at: datetime | None
    rejection_reason: str | None
    created_at: datetime


class RequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[RequestResponse]
    total: int
