from __future__ import annotations

from typing import TYPE_CHECKING

from leave_ledger.exceptions import Forbidden

if TYPE_CHECKING:
    from leave_ledger.schemas.auth import AuthContext


def require_admin(auth: AuthContext) -> None:
    if not auth.is_admin:
        raise Forbidden("Forbidden - Admin access required")


def require_reviewer(auth: AuthContext) -> None:
    if not auth.is_reviewer:
        raise Forbidden("Forbidden - PM or Admin access required")


def require_self_or_reviewer(auth: AuthContext, person_id: str) -> None:
    """People may read their own data; managers and admins may read anyone's."""
    if person_id != auth.user_id and not auth.is_reviewer:
        raise Forbidden("Forbidden")
