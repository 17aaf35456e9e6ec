"""
Bearer-token authentication helpers.

Login and user management live in the account service. This API only
verifies the short-lived HS256 JWT it issues and turns it into a Principal:
    sub : user id
    role: CUSTOMER | ADMIN
"""
import logging
from datetime import datetime, timezone, timedelta
from fastapi import HTTPException, Header
from typing import Optional

import jwt

from config import settings
from domain.enums import Role
from domain.errors import UnauthorizedError
from domain.principal import Principal

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def _require_secret() -> str:
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    return settings.jwt_secret


def decode_access_token(token: str) -> dict:
    secret = _require_secret()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Access token expired.")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid access token.")


def issue_access_token(*, user_id: int, role: Role) -> str:
    now = _now_utc()
    exp = now.replace(microsecond=0) + timedelta(minutes=settings.jwt_access_ttl_minutes)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": str(user_id),
        "role": Role(role).value,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _require_secret(), algorithm="HS256")


def principal_from_claims(payload: dict) -> Principal:
    try:
        return Principal(user_id=int(payload["sub"]), role=Role(payload.get("role")))
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Rejected token with malformed claims: sub={payload.get('sub')!r}")
        raise UnauthorizedError("Invalid access token claims.")


async def get_authenticated_principal(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Principal:
    """FastAPI dependency: resolve the caller from Authorization: Bearer <jwt>."""
    token = _parse_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Access denied. No token provided.")
    return principal_from_claims(decode_access_token(token))
