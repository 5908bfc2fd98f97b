"""Reporting service: yearly leave summaries and audit log queries."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlmodel import col

from leave_ledger.config import get_settings
from leave_ledger.models.audit import AuditLog
from leave_ledger.models.balance import LeaveBalance
from leave_ledger.models.enums import RequestStatus
from leave_ledger.models.request import LeaveRequest
from leave_ledger.schemas.report import (
    AuditLogEntryResponse,
    AuditLogListResponse,
    LeaveReportResponse,
    PersonLeaveReport,
)
from leave_ledger.services.access import require_admin, require_reviewer
from leave_ledger.services.balance import remaining_days

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.auth import AuthContext


def _year_bounds(year: int, tz_name: str) -> tuple[datetime, datetime]:
    """UTC instants at which ``year`` starts and ends in ``tz_name``."""
    zone = ZoneInfo(tz_name)
    start = datetime(year, 1, 1, tzinfo=zone).astimezone(UTC)
    end = datetime(year + 1, 1, 1, tzinfo=zone).astimezone(UTC)
    return start, end


async def get_leave_report(
    session: AsyncSession,
    auth: AuthContext,
    year: int,
) -> LeaveReportResponse:
    """Summarise balances and request outcomes per person for ``year``.

    A request counts towards the year it was submitted in, taken in the
    configured reference time zone.
    """
    require_reviewer(auth)

    year_start, next_year_start = _year_bounds(year, get_settings().timezone)

    counts_result = await session.execute(
        select(
            col(LeaveRequest.person_id),
            col(LeaveRequest.status),
            func.count(),
        )
        .where(
            col(LeaveRequest.created_at) >= year_start,
            col(LeaveRequest.created_at) < next_year_start,
        )
        .group_by(col(LeaveRequest.person_id), col(LeaveRequest.status))
    )
    counts: dict[str, dict[str, int]] = defaultdict(dict)
    for person_id, status, count in counts_result.all():
        counts[person_id][status] = int(count)

    balances_result = await session.execute(select(LeaveBalance).order_by(col(LeaveBalance.person_id)))
    balances = list(balances_result.scalars().all())

    items: list[PersonLeaveReport] = []
    for balance in balances:
        person_counts = counts.get(balance.person_id, {})
        items.append(
            PersonLeaveReport(
                person_id=balance.person_id,
                total_days=balance.total_days,
                used_days=balance.used_days,
                pending_days=balance.pending_days,
                carried_over_days=balance.carried_over_days,
                remaining_days=remaining_days(balance),
                requests_this_year=sum(person_counts.values()),
                approved_requests=person_counts.get(RequestStatus.APPROVED.value, 0),
                rejected_requests=person_counts.get(RequestStatus.REJECTED.value, 0),
            )
        )

    return LeaveReportResponse(year=year, items=items, total=len(items))


async def query_audit_log(
    session: AsyncSession,
    auth: AuthContext,
    *,
    actor_id: str | None = None,
    action: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AuditLogListResponse:
    """Query audit log entries with optional filters (admin only)."""
    require_admin(auth)

    filters = []
    if actor_id is not None:
        filters.append(col(AuditLog.actor_id) == actor_id)
    if action is not None:
        filters.append(col(AuditLog.action) == action)

    count_result = await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AuditLog).where(*filters).order_by(col(AuditLog.created_at).desc()).offset(offset).limit(limit)
    )
    entries = list(result.scalars().all())

    return AuditLogListResponse(
        items=[
            AuditLogEntryResponse(
                id=e.id,
                actor_id=e.actor_id,
                action=e.action,
                details=e.details,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
    )
