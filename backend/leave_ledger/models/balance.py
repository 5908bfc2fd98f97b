from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from leave_ledger.models.base import utc_now


class LeaveBalance(SQLModel, table=True):
    """Per-person leave counters, kept in step with request transitions.

    Remaining days are never stored; see ``services.balance.remaining_days``.
    """

    __tablename__ = "leave_balance"

    person_id: str = Field(primary_key=True, max_length=255)
    total_days: int = Field(default=25, sa_column_kwargs={"server_default": "25"})
    used_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    pending_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carried_over_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    last_updated: datetime = Field(  # type: ignore[call-overload]
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
