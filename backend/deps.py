"""
Shared FastAPI dependencies.

Centralizes common dependencies so routers can import from a single place
(DB session, principal/role guards, pagination).
"""

from __future__ import annotations

from typing import TypedDict

from fastapi import Depends, Query

from database import get_db  # noqa: F401  (re-exported for routers)
from domain.errors import ForbiddenError
from domain.principal import Principal
from middleware.auth import get_authenticated_principal


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}


async def require_principal(
    principal: Principal = Depends(get_authenticated_principal),
) -> Principal:
    """Any authenticated caller (CUSTOMER or ADMIN)."""
    return principal


async def require_admin(
    principal: Principal = Depends(get_authenticated_principal),
) -> Principal:
    """Require the ADMIN role."""
    if not principal.is_admin:
        raise ForbiddenError("Access forbidden. Insufficient privileges.")
    return principal
