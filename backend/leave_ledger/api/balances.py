# ruff: noqa: B008, TC001
from __future__ import annotations

from fastapi import APIRouter, Query

from leave_ledger.api.deps import AuthDep
from leave_ledger.db import SessionDep
from leave_ledger.schemas.balance import BalanceFields, BalanceListResponse, BalanceResponse
from leave_ledger.services import balance as balance_service
from leave_ledger.services.access import require_self_or_reviewer

balances_router = APIRouter(prefix="/balances", tags=["balances"])


@balances_router.get("", response_model=BalanceListResponse)
async def list_balances(
    session: SessionDep,
    auth: AuthDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> BalanceListResponse:
    """List every stored balance (admin only)."""
    return await balance_service.list_balances(session, auth, offset, limit)


@balances_router.get("/{person_id}", response_model=BalanceResponse)
async def get_balance(
    person_id: str,
    session: SessionDep,
    auth: AuthDep,
) -> BalanceResponse:
    """Get a person's balance, creating the default one on first access."""
    require_self_or_reviewer(auth, person_id)
    return await balance_service.get_balance(session, person_id)


@balances_router.patch("/{person_id}", response_model=BalanceResponse)
async def update_balance(
    person_id: str,
    payload: BalanceFields,
    session: SessionDep,
    auth: AuthDep,
) -> BalanceResponse:
    """Override any of a person's counters (admin only)."""
    return await balance_service.update_balance(session, auth, person_id, payload)
