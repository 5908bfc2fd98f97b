# ruff: noqa: B008
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header

from leave_ledger.models.enums import Role
from leave_ledger.schemas.auth import AuthContext

logger = logging.getLogger(__name__)


def _parse_roles(raw: str) -> frozenset[Role]:
    roles: set[Role] = set()
    for name in raw.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            roles.add(Role(name))
        except ValueError:
            logger.debug("Ignoring unknown role %r", name)
    return frozenset(roles or {Role.USER})


async def get_auth_context(
    x_user_id: str = Header(min_length=1),
    x_roles: str = Header(default=Role.USER.value),
) -> AuthContext:
    """Build the actor context from headers set by the identity provider."""
    return AuthContext(user_id=x_user_id, roles=_parse_roles(x_roles))


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]
