# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """A person's leave counters plus the derived remaining days."""

    person_id: str
    total_days: int
    used_days: int
    pending_days: int
    carried_over_days: int
    remaining_days: int
    last_updated: datetime


class BalanceListResponse(BaseModel):
    """Paginated list of stored balances."""

    items: list[BalanceResponse]
    total: int


# ---------------------------------------------------------------------------
# Admin override schema
# ---------------------------------------------------------------------------


class BalanceFields(BaseModel):
    """Administrative override. Omitted fields are left unchanged.

    No bounds are enforced; administrators may set any integer to correct mistakes.
    """

    total_days: int | None = None
    used_days: int | None = None
    pending_days: int | None = None
    carried_over_days: int | None = None

    def provided(self) -> dict[str, Any]:
        """Return only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True, exclude_none=True)
