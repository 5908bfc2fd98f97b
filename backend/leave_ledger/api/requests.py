# ruff: noqa: B008, TC001
from __future__ import annotations

from fastapi import APIRouter, Query, status

from leave_ledger.api.deps import AuthDep
from leave_ledger.db import SessionDep
from leave_ledger.models.enums import RequestStatus
from leave_ledger.schemas.request import (
    CreateRequestPayload,
    DecisionPayload,
    RequestListResponse,
    RequestResponse,
)
from leave_ledger.services import request as request_service

requests_router = APIRouter(prefix="/requests", tags=["requests"])


@requests_router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: CreateRequestPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """Submit a vacation or sick-leave request for the acting person."""
    return await request_service.create_request(session, auth, payload)


@requests_router.get("", response_model=RequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    person_id: str | None = Query(default=None),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> RequestListResponse:
    """List leave requests for the actor, or for someone else (pm/admin)."""
    return await request_service.list_requests(session, auth, person_id, status_filter, offset, limit)


@requests_router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: int,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """Get a single leave request."""
    return await request_service.get_request(session, auth, request_id)


@requests_router.post("/{request_id}/decision", response_model=RequestResponse)
async def decide_request(
    request_id: int,
    payload: DecisionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """Approve or reject a pending vacation request (pm/admin)."""
    return await request_service.decide_request(session, auth, request_id, payload)
