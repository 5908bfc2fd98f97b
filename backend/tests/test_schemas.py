"""Unit tests for API schemas and the actor context."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from leave_ledger.api.deps import _parse_roles
from leave_ledger.models.enums import LeaveType, Role
from leave_ledger.schemas.auth import AuthContext
from leave_ledger.schemas.balance import BalanceFields
from leave_ledger.schemas.request import CreateRequestPayload, DecisionPayload

# ---------------------------------------------------------------------------
# CreateRequestPayload
# ---------------------------------------------------------------------------


def test_create_payload_accepts_type_alias() -> None:
    payload = CreateRequestPayload.model_validate(
        {"type": "sick-leave", "start_date": "2025-01-06", "end_date": "2025-01-07"}
    )
    assert payload.leave_type == LeaveType.SICK_LEAVE
    assert payload.start_date == date(2025, 1, 6)


def test_create_payload_defaults_to_vacation() -> None:
    payload = CreateRequestPayload(start_date=date(2025, 1, 6), end_date=date(2025, 1, 7))
    assert payload.leave_type == LeaveType.VACATION
    assert payload.reason is None


def test_create_payload_allows_reversed_range() -> None:
    # Ordering is an admission rule reported as InvalidDate, not a schema error.
    payload = CreateRequestPayload(start_date=date(2025, 1, 7), end_date=date(2025, 1, 6))
    assert payload.end_date < payload.start_date


def test_create_payload_rejects_unknown_type() -> None:
    with pytest.raises(ValidationError):
        CreateRequestPayload.model_validate({"type": "sabbatical", "start_date": "2025-01-06", "end_date": "2025-01-07"})


def test_decision_payload_requires_approved() -> None:
    with pytest.raises(ValidationError):
        DecisionPayload.model_validate({"reason": "why"})


# ---------------------------------------------------------------------------
# BalanceFields
# ---------------------------------------------------------------------------


def test_balance_fields_provided_only_set_fields() -> None:
    fields = BalanceFields(total_days=30)
    assert fields.provided() == {"total_days": 30}


def test_balance_fields_allow_negative_values() -> None:
    fields = BalanceFields(used_days=-3, carried_over_days=0)
    assert fields.provided() == {"used_days": -3, "carried_over_days": 0}


def test_balance_fields_explicit_null_means_unchanged() -> None:
    fields = BalanceFields.model_validate({"pending_days": None, "total_days": 20})
    assert fields.provided() == {"total_days": 20}


# ---------------------------------------------------------------------------
# AuthContext and role parsing
# ---------------------------------------------------------------------------


def test_auth_context_defaults_to_user() -> None:
    auth = AuthContext(user_id="alice")
    assert auth.roles == frozenset({Role.USER})
    assert auth.is_reviewer is False
    assert auth.is_admin is False


def test_auth_context_pm_is_reviewer_not_admin() -> None:
    auth = AuthContext(user_id="paula", roles=frozenset({Role.PM}))
    assert auth.is_reviewer is True
    assert auth.is_admin is False


def test_auth_context_admin_is_reviewer() -> None:
    auth = AuthContext(user_id="root", roles=frozenset({Role.ADMIN}))
    assert auth.is_reviewer is True
    assert auth.is_admin is True


def test_parse_roles_ignores_unknown_and_whitespace() -> None:
    assert _parse_roles(" pm , ADMIN,guild-member,") == frozenset({Role.PM, Role.ADMIN})


def test_parse_roles_falls_back_to_user() -> None:
    assert _parse_roles("") == frozenset({Role.USER})
    assert _parse_roles("moderator") == frozenset({Role.USER})
