"""Tests for fire-and-forget audit delivery and the database sink."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select

from leave_ledger.models.audit import AuditLog
from leave_ledger.models.enums import AuditAction
from leave_ledger.services.audit import (
    AuditEvent,
    AuditSink,
    DatabaseAuditSink,
    InMemoryAuditSink,
    drain_audit_events,
    emit_audit_event,
    get_audit_sink,
    set_audit_sink,
)

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

ADMIN_HEADERS = {"X-User-Id": "root", "X-Roles": "admin"}


class _FailingSink:
    async def record(self, event: AuditEvent) -> None:
        msg = "audit store is down"
        raise RuntimeError(msg)


def test_sinks_satisfy_protocol() -> None:
    assert isinstance(InMemoryAuditSink(), AuditSink)
    assert isinstance(DatabaseAuditSink(), AuditSink)
    assert isinstance(_FailingSink(), AuditSink)


def test_fixture_installs_in_memory_sink(audit_sink: InMemoryAuditSink) -> None:
    assert get_audit_sink() is audit_sink


async def test_emit_delivers_to_installed_sink(audit_sink: InMemoryAuditSink) -> None:
    emit_audit_event("alice", AuditAction.CREATE_REQUEST, "Created vacation request for 5 days")
    await drain_audit_events()

    assert len(audit_sink.events) == 1
    event = audit_sink.events[0]
    assert event.actor_id == "alice"
    assert event.action == "CREATE_REQUEST"
    assert event.details == "Created vacation request for 5 days"
    assert event.occurred_at is not None


async def test_emit_does_not_wait_for_delivery(audit_sink: InMemoryAuditSink) -> None:
    emit_audit_event("alice", AuditAction.UPDATE_BALANCE)
    assert audit_sink.events == []

    await drain_audit_events()
    assert len(audit_sink.events) == 1


async def test_failing_sink_is_logged_and_ignored(caplog: pytest.LogCaptureFixture) -> None:
    set_audit_sink(_FailingSink())

    with caplog.at_level(logging.ERROR, logger="leave_ledger.services.audit"):
        emit_audit_event("alice", AuditAction.CREATE_REQUEST, "boom")
        await drain_audit_events()

    assert "Failed to record audit event CREATE_REQUEST by alice" in caplog.text


async def test_failing_sink_does_not_fail_the_operation(async_client: AsyncClient) -> None:
    set_audit_sink(_FailingSink())

    resp = await async_client.patch("/balances/alice", json={"total_days": 30}, headers=ADMIN_HEADERS)
    await drain_audit_events()

    assert resp.status_code == 200
    assert resp.json()["total_days"] == 30


def test_emit_without_running_loop_is_dropped(
    audit_sink: InMemoryAuditSink,
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="leave_ledger.services.audit"):
        emit_audit_event("alice", AuditAction.CREATE_REQUEST)

    assert audit_sink.events == []
    assert "dropping audit event" in caplog.text


async def test_database_sink_writes_row(
    session_factory: async_sessionmaker[AsyncSession],
    db_session: AsyncSession,
) -> None:
    sink = DatabaseAuditSink(session_factory)
    await sink.record(AuditEvent(actor_id="root", action="UPDATE_BALANCE", details="Updated balance for user alice"))

    result = await db_session.execute(select(AuditLog))
    entries = list(result.scalars().all())
    assert len(entries) == 1
    assert entries[0].actor_id == "root"
    assert entries[0].action == "UPDATE_BALANCE"
    assert entries[0].details == "Updated balance for user alice"


async def test_database_sink_entries_are_queryable(
    async_client: AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    set_audit_sink(DatabaseAuditSink(session_factory))

    emit_audit_event("alice", AuditAction.CREATE_REQUEST, "Created sick-leave request for 2 days")
    await drain_audit_events()
    emit_audit_event("paula", AuditAction.APPROVE_REQUEST, "Approved request 1 for user alice")
    await drain_audit_events()

    resp = await async_client.get("/reports/audit-log", params={"actor_id": "alice"}, headers=ADMIN_HEADERS)
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["action"] == "CREATE_REQUEST"
    assert data["items"][0]["details"] == "Created sick-leave request for 2 days"
