"""Balance ledger: the four per-person counters and the arithmetic that moves them.

The primitives (``reserve``, ``credit_used``, ``release``,
``approve_transition``, ``set_fields``) each lock the person's balance row
with ``SELECT ... FOR UPDATE`` and flush, but never commit: the caller owns
the transaction so that a request-status change and its ledger effect land
in the same commit.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import col

from leave_ledger.config import get_settings
from leave_ledger.db import run_in_transaction
from leave_ledger.exceptions import NotFound
from leave_ledger.models.balance import LeaveBalance
from leave_ledger.models.enums import AuditAction
from leave_ledger.schemas.balance import BalanceListResponse, BalanceResponse
from leave_ledger.services.access import require_admin
from leave_ledger.services.audit import emit_audit_event

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.balance import BalanceFields

logger = logging.getLogger(__name__)


def remaining_days(balance: LeaveBalance) -> int:
    """Days still available: total + carried over - used - pending."""
    return balance.total_days + balance.carried_over_days - balance.used_days - balance.pending_days


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_balance_response(balance: LeaveBalance) -> BalanceResponse:
    """Map a balance model to its response schema."""
    return BalanceResponse(
        person_id=balance.person_id,
        total_days=balance.total_days,
        used_days=balance.used_days,
        pending_days=balance.pending_days,
        carried_over_days=balance.carried_over_days,
        remaining_days=remaining_days(balance),
        last_updated=balance.last_updated,
    )


def _check_days(days: int) -> None:
    if days < 0:
        msg = f"day count must not be negative, got {days}"
        raise ValueError(msg)


def _touch(balance: LeaveBalance) -> None:
    balance.last_updated = datetime.now(UTC)
    balance.version += 1


async def _insert_default_balance(session: AsyncSession, person_id: str) -> None:
    """Create the default balance row unless one already exists.

    Uses ``INSERT ... ON CONFLICT DO NOTHING`` so two first touches racing on
    the same person leave exactly one row and no integrity error.
    """
    insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
    statement = (
        insert(LeaveBalance.__table__)  # type: ignore[arg-type]
        .values(
            person_id=person_id,
            total_days=get_settings().default_total_days,
            used_days=0,
            pending_days=0,
            carried_over_days=0,
            last_updated=datetime.now(UTC),
            version=1,
        )
        .on_conflict_do_nothing(index_elements=["person_id"])
    )
    await session.execute(statement)


async def _find_balance(session: AsyncSession, person_id: str, *, for_update: bool = False) -> LeaveBalance | None:
    query = select(LeaveBalance).where(col(LeaveBalance.person_id) == person_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def get_or_create_balance_for_update(session: AsyncSession, person_id: str) -> LeaveBalance:
    """Return the person's balance row locked for the rest of the transaction, creating it if absent."""
    balance = await _find_balance(session, person_id, for_update=True)
    if balance is None:
        await _insert_default_balance(session, person_id)
        balance = await _find_balance(session, person_id, for_update=True)
    if balance is None:  # pragma: no cover - the insert above guarantees a row
        raise NotFound(f"Balance for {person_id} not found")
    return balance


async def get_existing_balance_for_update(session: AsyncSession, person_id: str) -> LeaveBalance:
    """Return the person's locked balance row, raising ``NotFound`` if none is stored."""
    balance = await _find_balance(session, person_id, for_update=True)
    if balance is None:
        raise NotFound("User balance not found")
    return balance


# ---------------------------------------------------------------------------
# Ledger primitives
# ---------------------------------------------------------------------------


async def reserve(session: AsyncSession, person_id: str, days: int) -> LeaveBalance:
    """Hold ``days`` as pending for a newly created vacation request."""
    _check_days(days)
    balance = await get_or_create_balance_for_update(session, person_id)
    balance.pending_days += days
    _touch(balance)
    await session.flush()
    return balance


async def credit_used(session: AsyncSession, person_id: str, days: int) -> LeaveBalance:
    """Record ``days`` as consumed."""
    _check_days(days)
    balance = await get_or_create_balance_for_update(session, person_id)
    balance.used_days += days
    _touch(balance)
    await session.flush()
    return balance


def _release_pending(balance: LeaveBalance, days: int) -> None:
    if balance.pending_days < days:
        # Only reachable after an administrator lowered pending_days by hand.
        logger.warning(
            "Releasing %d pending days for %s but only %d are pending; clamping to zero",
            days,
            balance.person_id,
            balance.pending_days,
        )
        balance.pending_days = 0
    else:
        balance.pending_days -= days


async def release(session: AsyncSession, person_id: str, days: int) -> LeaveBalance:
    """Return ``days`` from pending to available."""
    _check_days(days)
    balance = await get_or_create_balance_for_update(session, person_id)
    _release_pending(balance, days)
    _touch(balance)
    await session.flush()
    return balance


async def approve_transition(session: AsyncSession, person_id: str, days: int) -> LeaveBalance:
    """Move ``days`` from pending to used under a single lock and a single flush."""
    _check_days(days)
    balance = await get_or_create_balance_for_update(session, person_id)
    _release_pending(balance, days)
    balance.used_days += days
    _touch(balance)
    await session.flush()
    return balance


async def set_fields(session: AsyncSession, person_id: str, fields: BalanceFields) -> LeaveBalance:
    """Administrative override of any subset of the counters."""
    balance = await get_or_create_balance_for_update(session, person_id)
    for name, value in fields.provided().items():
        setattr(balance, name, value)
    _touch(balance)
    await session.flush()
    return balance


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def get_balance(session: AsyncSession, person_id: str) -> BalanceResponse:
    """Return the person's balance, creating the default one on first access."""

    async def _operation() -> BalanceResponse:
        balance = await _find_balance(session, person_id)
        if balance is None:
            await _insert_default_balance(session, person_id)
            await session.commit()
            balance = await _find_balance(session, person_id)
            if balance is None:  # pragma: no cover
                raise NotFound(f"Balance for {person_id} not found")
            logger.info("Created default balance for %s", person_id)
        return _build_balance_response(balance)

    return await run_in_transaction(session, _operation)


async def list_balances(
    session: AsyncSession,
    auth: AuthContext,
    offset: int = 0,
    limit: int = 50,
) -> BalanceListResponse:
    """List every stored balance, ordered by person (admin only)."""
    require_admin(auth)

    count_result = await session.execute(select(func.count()).select_from(LeaveBalance))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveBalance).order_by(col(LeaveBalance.person_id)).offset(offset).limit(limit)
    )
    balances = list(result.scalars().all())

    return BalanceListResponse(
        items=[_build_balance_response(b) for b in balances],
        total=total,
    )


async def update_balance(
    session: AsyncSession,
    auth: AuthContext,
    person_id: str,
    payload: BalanceFields,
) -> BalanceResponse:
    """Apply an administrative balance override (admin only)."""
    require_admin(auth)

    async def _operation() -> BalanceResponse:
        balance = await set_fields(session, person_id, payload)
        await session.commit()
        return _build_balance_response(balance)

    response = await run_in_transaction(session, _operation)

    changes = ", ".join(f"{name}={value}" for name, value in payload.provided().items()) or "no changes"
    logger.info("Balance for %s updated by %s: %s", person_id, auth.user_id, changes)
    emit_audit_event(auth.user_id, AuditAction.UPDATE_BALANCE, f"Updated balance for user {person_id}: {changes}")
    return response
