# ruff: noqa: TC003
from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlmodel import col

from leave_ledger.config import get_settings
from leave_ledger.db import run_in_transaction
from leave_ledger.exceptions import AlreadyProcessed, NotFound
from leave_ledger.models.enums import AuditAction, LeaveType, RequestStatus
from leave_ledger.models.request import LeaveRequest
from leave_ledger.schemas.request import DecisionStamp, RequestListResponse, RequestResponse
from leave_ledger.services.access import require_reviewer, require_self_or_reviewer
from leave_ledger.services.audit import emit_audit_event
from leave_ledger.services.balance import (
    approve_transition,
    credit_used,
    get_existing_balance_for_update,
    get_or_create_balance_for_update,
    release,
    remaining_days,
    reserve,
)
from leave_ledger.services.validation import validate_sick_leave, validate_vacation

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.models.balance import LeaveBalance
    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.request import CreateRequestPayload, DecisionPayload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _stamp(actor_id: str | None, decided_at: datetime | None) -> DecisionStamp | None:
    if actor_id is None or decided_at is None:
        return None
    return DecisionStamp(actor_id=actor_id, decided_at=decided_at)


def _build_request_response(request: LeaveRequest) -> RequestResponse:
    """Map a request model to its response schema."""
    if request.id is None:
        msg = "request has not been flushed"
        raise ValueError(msg)
    return RequestResponse(
        id=request.id,
        person_id=request.person_id,
        leave_type=LeaveType(request.leave_type),
        start_date=request.start_date,
        end_date=request.end_date,
        requested_days=request.requested_days,
        reason=request.reason,
        status=RequestStatus(request.status),
        decided_by=request.decided_by,
        decided_at=request.decided_at,
        manager_decision=_stamp(request.manager_decided_by, request.manager_decided_at),
        admin_decision=_stamp(request.admin_decided_by, request.admin_decided_at),
        rejected_by=request.rejected_by,
        rejected_at=request.rejected_at,
        rejection_reason=request.rejection_reason,
        created_at=request.created_at,
    )


async def _get_request_or_404(session: AsyncSession, request_id: int) -> LeaveRequest:
    """Fetch a request by ID. Raises 404 if not found."""
    result = await session.execute(
        select(LeaveRequest)
        .where(col(LeaveRequest.id) == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("Request not found")
    return request


async def _lock_balance(session: AsyncSession, person_id: str) -> LeaveBalance:
    if get_settings().require_existing_balance:
        return await get_existing_balance_for_update(session, person_id)
    return await get_or_create_balance_for_update(session, person_id)


async def _claim_pending(session: AsyncSession, request_id: int, values: dict[str, Any]) -> bool:
    """Compare-and-swap on status: apply ``values`` only if the request is still pending.

    Returns False when another decision committed first.
    """
    result = await session.execute(
        update(LeaveRequest)
        .where(
            col(LeaveRequest.id) == request_id,
            col(LeaveRequest.status) == RequestStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1  # type: ignore[attr-defined]


def _decision_values(auth: AuthContext, payload: DecisionPayload, decided_at: datetime) -> dict[str, Any]:
    """Column updates for a decision.

    An approval fills the slot matching the actor's role (admin wins when the
    actor holds both). A rejection clears both slots and records who rejected.
    """
    values: dict[str, Any] = {"decided_by": auth.user_id, "decided_at": decided_at}
    if payload.approved:
        values["status"] = RequestStatus.APPROVED.value
        slot = "admin" if auth.is_admin else "manager"
        values[f"{slot}_decided_by"] = auth.user_id
        values[f"{slot}_decided_at"] = decided_at
        values.update(rejected_by=None, rejected_at=None, rejection_reason=None)
    else:
        values["status"] = RequestStatus.REJECTED.value
        values.update(
            manager_decided_by=None,
            manager_decided_at=None,
            admin_decided_by=None,
            admin_decided_at=None,
            rejected_by=auth.user_id,
            rejected_at=decided_at,
            rejection_reason=payload.reason,
        )
    return values


async def _create_vacation(
    session: AsyncSession,
    person_id: str,
    payload: CreateRequestPayload,
    now: datetime,
) -> LeaveRequest:
    """Validate against the locked balance, then persist as pending and reserve the days."""
    balance = await _lock_balance(session, person_id)

    result = validate_vacation(
        payload.start_date,
        payload.end_date,
        remaining_days(balance),
        now=now,
        tz_name=get_settings().timezone,
    )
    result.raise_for_error()
    requested_days = result.requested_days or 0

    leave_request = LeaveRequest(
        person_id=person_id,
        leave_type=LeaveType.VACATION.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        requested_days=requested_days,
        reason=payload.reason,
        status=RequestStatus.PENDING.value,
        created_at=now,
    )
    session.add(leave_request)
    await session.flush()

    await reserve(session, person_id, requested_days)
    return leave_request


async def _create_sick_leave(
    session: AsyncSession,
    person_id: str,
    payload: CreateRequestPayload,
    now: datetime,
) -> LeaveRequest:
    """Validate, then persist as already approved and debit used days.

    Remaining days are not checked and may go negative.
    """
    await _lock_balance(session, person_id)

    result = validate_sick_leave(
        payload.start_date,
        payload.end_date,
        now=now,
        tz_name=get_settings().timezone,
    )
    result.raise_for_error()
    requested_days = result.requested_days or 0

    leave_request = LeaveRequest(
        person_id=person_id,
        leave_type=LeaveType.SICK_LEAVE.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        requested_days=requested_days,
        reason=payload.reason,
        status=RequestStatus.APPROVED.value,
        decided_by=person_id,
        decided_at=now,
        created_at=now,
    )
    session.add(leave_request)
    await session.flush()

    await credit_used(session, person_id, requested_days)
    return leave_request


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateRequestPayload,
    now: datetime | None = None,
) -> RequestResponse:
    """Create a leave request for the acting person.

    Flow:
    1. Lock the person's balance row (created lazily unless strict mode is on)
    2. Run the admission rules for the leave type
    3. Insert the request: pending for vacation, approved for sick leave
    4. Reserve (vacation) or debit (sick leave) the frozen day count
    5. Commit request and balance together
    6. Emit the audit event
    """
    person_id = auth.user_id

    async def _operation() -> RequestResponse:
        current = now or datetime.now(UTC)
        if payload.leave_type == LeaveType.SICK_LEAVE:
            leave_request = await _create_sick_leave(session, person_id, payload, current)
        else:
            leave_request = await _create_vacation(session, person_id, payload, current)
        await session.commit()
        await session.refresh(leave_request)
        return _build_request_response(leave_request)

    response = await run_in_transaction(session, _operation)

    logger.info(
        "Created %s request %d for %s: %d days, status=%s",
        response.leave_type,
        response.id,
        person_id,
        response.requested_days,
        response.status,
    )
    emit_audit_event(
        person_id,
        AuditAction.CREATE_REQUEST,
        f"Created {response.leave_type} request for {response.requested_days} days",
    )
    return response


async def decide_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: int,
    payload: DecisionPayload,
) -> RequestResponse:
    """Approve or reject a pending vacation request.

    Flow:
    1. Require pm or admin
    2. Fetch the request (404) and reject anything not pending (409)
    3. Compare-and-swap the status away from pending; losing the swap is 409
    4. Move the frozen day count pending -> used (approve) or release it (reject)
    5. Commit status and balance together
    6. Emit the audit event
    """
    require_reviewer(auth)

    async def _operation() -> RequestResponse:
        leave_request = await _get_request_or_404(session, request_id)
        if leave_request.status != RequestStatus.PENDING.value:
            raise AlreadyProcessed

        person_id = leave_request.person_id
        requested_days = leave_request.requested_days
        values = _decision_values(auth, payload, datetime.now(UTC))

        if not await _claim_pending(session, request_id, values):
            raise AlreadyProcessed

        if payload.approved:
            await approve_transition(session, person_id, requested_days)
        else:
            await release(session, person_id, requested_days)

        await session.commit()
        await session.refresh(leave_request)
        return _build_request_response(leave_request)

    response = await run_in_transaction(session, _operation)

    verb = "Approved" if payload.approved else "Rejected"
    logger.info("%s request %d for %s by %s", verb, request_id, response.person_id, auth.user_id)
    emit_audit_event(
        auth.user_id,
        AuditAction.APPROVE_REQUEST if payload.approved else AuditAction.REJECT_REQUEST,
        f"{verb} request {request_id} for user {response.person_id}",
    )
    return response


async def get_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: int,
) -> RequestResponse:
    """Get a single request visible to the actor."""
    leave_request = await _get_request_or_404(session, request_id)
    require_self_or_reviewer(auth, leave_request.person_id)
    return _build_request_response(leave_request)


async def list_requests(
    session: AsyncSession,
    auth: AuthContext,
    person_id: str | None = None,
    status_filter: RequestStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> RequestListResponse:
    """List one person's requests, newest first. Defaults to the actor's own."""
    target = person_id or auth.user_id
    require_self_or_reviewer(auth, target)

    base_filters = [col(LeaveRequest.person_id) == target]
    if status_filter is not None:
        base_filters.append(col(LeaveRequest.status) == status_filter.value)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*base_filters)
        .order_by(col(LeaveRequest.created_at).desc(), col(LeaveRequest.id).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    return RequestListResponse(
        items=[_build_request_response(r) for r in requests],
        total=total,
    )
