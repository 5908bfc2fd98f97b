"""Fire-and-forget audit trail.

Audit events are delivered after the primary transaction has committed, in a
background task, through whichever ``AuditSink`` is installed. A failing sink
is logged and otherwise ignored; it can never undo or fail the operation that
produced the event.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from leave_ledger.models.audit import AuditLog
from leave_ledger.models.base import utc_now

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from leave_ledger.models.enums import AuditAction

logger = logging.getLogger(__name__)


class AuditEvent(BaseModel):
    """Who did what."""

    actor_id: str
    action: str
    details: str | None = None
    occurred_at: datetime = Field(default_factory=utc_now)


@runtime_checkable
class AuditSink(Protocol):
    """Interface for the audit collaborator."""

    async def record(self, event: AuditEvent) -> None:
        """Persist a single audit event."""
        ...


class DatabaseAuditSink:
    """Writes each event to ``audit_log`` in its own session and transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from leave_ledger.db import get_session_factory

            self._session_factory = get_session_factory()
        return self._session_factory

    async def record(self, event: AuditEvent) -> None:
        async with self._factory()() as session:
            session.add(
                AuditLog(
                    actor_id=event.actor_id,
                    action=event.action,
                    details=event.details,
                    created_at=event.occurred_at,
                )
            )
            await session.commit()


class InMemoryAuditSink:
    """In-memory sink for development and tests."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def record(self, event: AuditEvent) -> None:
        self.events.append(event)


_audit_sink: AuditSink = DatabaseAuditSink()
_pending: set[asyncio.Task[None]] = set()


def get_audit_sink() -> AuditSink:
    """Return the installed audit sink."""
    return _audit_sink


def set_audit_sink(sink: AuditSink) -> None:
    """Override the sink (for testing or production wiring)."""
    global _audit_sink
    _audit_sink = sink


async def _deliver(sink: AuditSink, event: AuditEvent) -> None:
    try:
        await sink.record(event)
    except Exception:
        logger.exception("Failed to record audit event %s by %s", event.action, event.actor_id)


def emit_audit_event(actor_id: str, action: AuditAction, details: str | None = None) -> None:
    """Schedule delivery of an audit event without waiting for it."""
    event = AuditEvent(actor_id=actor_id, action=action.value, details=details)
    try:
        task = asyncio.get_running_loop().create_task(_deliver(get_audit_sink(), event))
    except RuntimeError:
        logger.warning("No running event loop; dropping audit event %s by %s", event.action, actor_id)
        return
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def drain_audit_events() -> None:
    """Wait for every audit delivery scheduled on the running loop to finish."""
    loop = asyncio.get_running_loop()
    while True:
        outstanding = [task for task in _pending if task.get_loop() is loop and not task.done()]
        if not outstanding:
            return
        await asyncio.gather(*outstanding, return_exceptions=True)
