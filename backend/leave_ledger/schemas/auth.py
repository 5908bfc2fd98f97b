from __future__ import annotations

from pydantic import BaseModel

from leave_ledger.models.enums import Role


class AuthContext(BaseModel):
    """Actor identity and roles handed over by the identity provider."""

    user_id: str
    roles: frozenset[Role] = frozenset({Role.USER})

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    @property
    def is_reviewer(self) -> bool:
        """Managers and admins may decide requests and see other people's data."""
        return Role.PM in self.roles or Role.ADMIN in self.roles
