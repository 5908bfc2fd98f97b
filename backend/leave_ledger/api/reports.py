# ruff: noqa: B008
from __future__ import annotations

from fastapi import APIRouter, Query

from leave_ledger.api.deps import AuthDep
from leave_ledger.config import get_settings
from leave_ledger.db import SessionDep
from leave_ledger.schemas.report import AuditLogListResponse, LeaveReportResponse
from leave_ledger.services import report as report_service
from leave_ledger.services.validation import reference_today

reports_router = APIRouter(prefix="/reports", tags=["reports"])


@reports_router.get("/leave", response_model=LeaveReportResponse)
async def get_leave_report(
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=1970, le=9999),
) -> LeaveReportResponse:
    """Per-person leave summary for a year, defaulting to the current one (pm/admin)."""
    if year is None:
        year = reference_today(tz_name=get_settings().timezone).year
    return await report_service.get_leave_report(session, auth, year)


@reports_router.get("/audit-log", response_model=AuditLogListResponse)
async def query_audit_log(
    session: SessionDep,
    auth: AuthDep,
    actor_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> AuditLogListResponse:
    """Query audit log entries with optional filters (admin only)."""
    return await report_service.query_audit_log(
        session,
        auth,
        actor_id=actor_id,
        action=action,
        offset=offset,
        limit=limit,
    )
