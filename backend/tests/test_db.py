"""Tests for transactional retries and storage failure handling."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.db import run_in_transaction
from leave_ledger.exceptions import StorageUnavailable
from leave_ledger.services import balance as balance_service

USER_HEADERS = {"X-User-Id": "alice"}


def _operational_error() -> OperationalError:
    return OperationalError("UPDATE leave_balance", {}, Exception("database is locked"))


# ---------------------------------------------------------------------------
# run_in_transaction
# ---------------------------------------------------------------------------


async def test_returns_operation_result() -> None:
    session = AsyncMock(spec=AsyncSession)
    operation = AsyncMock(return_value=42)

    assert await run_in_transaction(session, operation) == 42
    operation.assert_awaited_once()
    session.rollback.assert_not_awaited()


async def test_retries_transient_failure() -> None:
    session = AsyncMock(spec=AsyncSession)
    operation = AsyncMock(side_effect=[_operational_error(), "done"])

    assert await run_in_transaction(session, operation, attempts=3) == "done"
    assert operation.await_count == 2
    session.rollback.assert_awaited_once()


async def test_gives_up_after_attempts() -> None:
    session = AsyncMock(spec=AsyncSession)
    operation = AsyncMock(side_effect=_operational_error())

    with pytest.raises(StorageUnavailable):
        await run_in_transaction(session, operation, attempts=3)
    assert operation.await_count == 3
    assert session.rollback.await_count == 3


async def test_default_attempts_from_settings() -> None:
    session = AsyncMock(spec=AsyncSession)
    operation = AsyncMock(side_effect=_operational_error())

    with pytest.raises(StorageUnavailable):
        await run_in_transaction(session, operation)
    assert operation.await_count == 3


async def test_exhaustion_is_logged_and_chained(caplog: pytest.LogCaptureFixture) -> None:
    session = AsyncMock(spec=AsyncSession)
    operation = AsyncMock(side_effect=_operational_error())

    with caplog.at_level(logging.WARNING, logger="leave_ledger.db"), pytest.raises(StorageUnavailable) as exc_info:
        await run_in_transaction(session, operation, attempts=3)

    assert isinstance(exc_info.value.__cause__, OperationalError)
    retries = [r for r in caplog.records if "retrying" in r.getMessage()]
    assert [r.levelno for r in retries] == [logging.WARNING, logging.WARNING]
    assert "Transaction failed after 3 attempts" in caplog.text


async def test_single_attempt_does_not_retry() -> None:
    session = AsyncMock(spec=AsyncSession)
    operation = AsyncMock(side_effect=_operational_error())

    with pytest.raises(StorageUnavailable):
        await run_in_transaction(session, operation, attempts=1)
    operation.assert_awaited_once()


async def test_other_errors_roll_back_without_retry() -> None:
    session = AsyncMock(spec=AsyncSession)
    operation = AsyncMock(side_effect=ValueError("bad"))

    with pytest.raises(ValueError, match="bad"):
        await run_in_transaction(session, operation)
    operation.assert_awaited_once()
    session.rollback.assert_awaited_once()


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------


async def test_storage_unavailable_maps_to_503(async_client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _unavailable(session: AsyncSession, person_id: str) -> None:
        raise StorageUnavailable

    monkeypatch.setattr(balance_service, "get_balance", _unavailable)

    resp = await async_client.get("/balances/alice", headers=USER_HEADERS)
    assert resp.status_code == 503
    assert resp.json()["error"] == "StorageUnavailable"


async def test_unhandled_database_error_maps_to_503(
    async_client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _broken(session: AsyncSession, person_id: str) -> None:
        raise _operational_error()

    monkeypatch.setattr(balance_service, "get_balance", _broken)

    resp = await async_client.get("/balances/alice", headers=USER_HEADERS)
    assert resp.status_code == 503
    assert resp.json()["error"] == "StorageUnavailable"
    assert resp.json()["detail"] == "Storage is unavailable"
