"""
Tests for bearer-token authentication and role guards.

Tests: token issue/decode, expiry, tampering, malformed claims, require_admin.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from config import settings
from domain.enums import Role
from domain.errors import ForbiddenError, UnauthorizedError
from tests.helpers import ADMIN, CUSTOMER


def _token(**overrides) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": "101",
        "role": "CUSTOMER",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=5)).timestamp()),
    }
    payload.update(overrides)
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


class TestAccessTokens:

    @pytest.mark.unit
    async def test_issued_token_resolves_principal(self):
        from middleware.auth import get_authenticated_principal, issue_access_token

        token = issue_access_token(user_id=7, role=Role.ADMIN)
        principal = await get_authenticated_principal(authorization=f"Bearer {token}")
        assert principal.user_id == 7
        assert principal.role is Role.ADMIN
        assert principal.is_admin

    @pytest.mark.unit
    async def test_missing_header(self):
        from middleware.auth import get_authenticated_principal

        with pytest.raises(UnauthorizedError) as exc_info:
            await get_authenticated_principal(authorization=None)
        assert exc_info.value.status_code == 401

    @pytest.mark.unit
    async def test_wrong_scheme(self):
        from middleware.auth import get_authenticated_principal

        with pytest.raises(UnauthorizedError):
            await get_authenticated_principal(authorization=f"Token {_token()}")

    @pytest.mark.unit
    def test_expired_token(self):
        from middleware.auth import decode_access_token

        past = int((datetime.now(timezone.utc) - timedelta(hours=2)).timestamp())
        with pytest.raises(UnauthorizedError) as exc_info:
            decode_access_token(_token(iat=past - 60, exp=past))
        assert "expired" in exc_info.value.message

    @pytest.mark.unit
    def test_foreign_signature(self):
        from middleware.auth import decode_access_token

        forged = jwt.encode({"sub": "1", "role": "ADMIN"}, "someone-elses-secret", algorithm="HS256")
        with pytest.raises(UnauthorizedError):
            decode_access_token(forged)

    @pytest.mark.unit
    def test_wrong_issuer(self):
        from middleware.auth import decode_access_token

        with pytest.raises(UnauthorizedError):
            decode_access_token(_token(iss="another-service"))

    @pytest.mark.unit
    @pytest.mark.parametrize("claims", [{"role": "SUPERUSER"}, {"sub": "not-a-number"}, {"role": None}])
    def test_malformed_claims(self, claims):
        from middleware.auth import decode_access_token, principal_from_claims

        payload = decode_access_token(_token(**claims))
        with pytest.raises(UnauthorizedError):
            principal_from_claims(payload)


class TestRoleGuards:

    @pytest.mark.unit
    async def test_require_admin_allows_admin(self):
        from deps import require_admin

        assert await require_admin(principal=ADMIN) is ADMIN

    @pytest.mark.unit
    async def test_require_admin_rejects_customer(self):
        from deps import require_admin

        with pytest.raises(ForbiddenError) as exc_info:
            await require_admin(principal=CUSTOMER)
        assert exc_info.value.status_code == 403

    @pytest.mark.unit
    def test_principal_access(self):
        assert CUSTOMER.can_access(CUSTOMER.user_id)
        assert not CUSTOMER.can_access(CUSTOMER.user_id + 1)
        assert ADMIN.can_access(CUSTOMER.user_id)
