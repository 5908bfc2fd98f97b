from __future__ import annotations

from sqlmodel import Field

from leave_ledger.models.base import CreatedAtMixin, UUIDKeyModel


class AuditLog(UUIDKeyModel, CreatedAtMixin, table=True):
    """Best-effort record of who did what."""

    __tablename__ = "audit_log"

    actor_id: str = Field(index=True, max_length=255)
    action: str = Field(max_length=50, index=True)
    details: str | None = None
