"""
Unit tests for the token service.

These tests cover:
- Long session creation (hashed storage, expiry, client metadata)
- Access token minting and verification
- Long session validation and revocation
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from jose import jwt

from schoolhub.modules.tokens.models import SessionStatus
from schoolhub.modules.tokens.service import (
    InvalidTokenError,
    TokenExpiredError,
    TokenNotFoundError,
    TokenService,
    _hash_token,
)
from schoolhub.modules.users.models import UserRole

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def token_service(settings):
    return TokenService(settings, clock=lambda: FIXED_NOW)


def _session(status=SessionStatus.ACTIVE, expires_at=None, user_id="user-1"):
    return SimpleNamespace(
        id="session-1",
        user_id=user_id,
        status=status,
        expires_at=expires_at or FIXED_NOW + timedelta(days=1),
    )


class TestHashToken:
    def test_hash_is_sha256_hex(self):
        assert len(_hash_token("abc")) == 64

    def test_hash_is_deterministic(self):
        assert _hash_token("abc") == _hash_token("abc")
        assert _hash_token("abc") != _hash_token("abd")


class TestCreateLongSession:
    @pytest.mark.asyncio
    async def test_stores_hash_not_token(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.create = AsyncMock()

            issued = await token_service.create_long_session(
                mock_db, "user-1", device="Firefox", ip="10.0.0.1"
            )

            kwargs = mock_repo.create.await_args.kwargs
            assert kwargs["token_hash"] == _hash_token(issued.token)
            assert issued.token not in kwargs.values()
            assert kwargs["device"] == "Firefox"
            assert kwargs["ip"] == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_expiry_uses_long_ttl(self, token_service, settings, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.create = AsyncMock()

            issued = await token_service.create_long_session(mock_db, "user-1")

        assert issued.expires_at == FIXED_NOW + settings.long_token_ttl
        assert len(issued.token) == 64

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.create = AsyncMock()

            first = await token_service.create_long_session(mock_db, "user-1")
            second = await token_service.create_long_session(mock_db, "user-1")

        assert first.token != second.token


class TestAccessTokens:
    def test_round_trip_claims(self, settings):
        service = TokenService(settings)
        issued = service.create_access_token("user-1", UserRole.SCHOOL_ADMIN, "school-1")

        claims = service.verify_access_token(issued.token)

        assert claims.sub == "user-1"
        assert claims.role is UserRole.SCHOOL_ADMIN
        assert claims.school_id == "school-1"
        assert claims.type == "access"

    def test_superadmin_has_no_school(self, settings):
        service = TokenService(settings)
        claims = service.verify_access_token(
            service.create_access_token("user-1", UserRole.SUPERADMIN).token
        )
        assert claims.school_id is None

    def test_same_second_tokens_differ(self, token_service):
        first = token_service.create_access_token("user-1", UserRole.SUPERADMIN)
        second = token_service.create_access_token("user-1", UserRole.SUPERADMIN)
        assert first.token != second.token

    def test_expiry_uses_short_ttl(self, token_service, settings):
        issued = token_service.create_access_token("user-1", UserRole.SUPERADMIN)
        assert issued.expires_at == FIXED_NOW + settings.short_token_ttl

    def test_expired_token_is_invalid(self, settings):
        past = datetime.now(UTC) - timedelta(days=1)
        issuer = TokenService(settings, clock=lambda: past)
        token = issuer.create_access_token("user-1", UserRole.SUPERADMIN).token

        with pytest.raises(InvalidTokenError):
            TokenService(settings).verify_access_token(token)

    def test_tampered_signature_is_invalid(self, settings):
        service = TokenService(settings)
        payload = jwt.get_unverified_claims(
            service.create_access_token("user-1", UserRole.SCHOOL_ADMIN, "school-1").token
        )
        payload["role"] = UserRole.SUPERADMIN.value
        forged = jwt.encode(payload, "another-secret", algorithm="HS256")

        with pytest.raises(InvalidTokenError):
            service.verify_access_token(forged)

    def test_malformed_token_is_invalid(self, settings):
        with pytest.raises(InvalidTokenError) as exc_info:
            TokenService(settings).verify_access_token("definitely.not.ajwt")
        assert exc_info.value.error_code == "invalid_token"

    def test_wrong_token_type_is_invalid(self, settings):
        now = int(datetime.now(UTC).timestamp())
        token = jwt.encode(
            {
                "sub": "user-1",
                "role": "superadmin",
                "jti": "x",
                "type": "refresh",
                "iat": now,
                "exp": now + 60,
            },
            settings.access_token_secret.get_secret_value(),
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            TokenService(settings).verify_access_token(token)


class TestValidateLongSession:
    @pytest.mark.asyncio
    async def test_active_session_returns_user(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(return_value=_session())

            user_id = await token_service.validate_long_session(mock_db, "token")

            mock_repo.get_by_token_hash.assert_awaited_once_with(mock_db, _hash_token("token"))
        assert user_id == "user-1"

    @pytest.mark.asyncio
    async def test_unknown_session_is_invalid(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(return_value=None)

            with pytest.raises(InvalidTokenError):
                await token_service.validate_long_session(mock_db, "token")

    @pytest.mark.asyncio
    async def test_revoked_session_looks_like_unknown(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(
                return_value=_session(status=SessionStatus.REVOKED)
            )

            with pytest.raises(InvalidTokenError) as exc_info:
                await token_service.validate_long_session(mock_db, "token")

        assert exc_info.value.error_code == "invalid_token"

    @pytest.mark.asyncio
    async def test_unknown_and_revoked_are_indistinguishable(self, token_service, mock_db):
        failures = []
        for stored in (None, _session(status=SessionStatus.REVOKED)):
            with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
                mock_repo.get_by_token_hash = AsyncMock(return_value=stored)

                with pytest.raises(InvalidTokenError) as exc_info:
                    await token_service.validate_long_session(mock_db, "token")

            failures.append(exc_info.value)

        unknown, revoked = failures
        assert type(unknown) is type(revoked)
        assert unknown.status_code == revoked.status_code == 401
        assert unknown.to_dict() == revoked.to_dict()
        assert unknown.headers == revoked.headers

    @pytest.mark.asyncio
    async def test_expired_session(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(
                return_value=_session(expires_at=FIXED_NOW - timedelta(seconds=1))
            )

            with pytest.raises(TokenExpiredError) as exc_info:
                await token_service.validate_long_session(mock_db, "token")

        assert exc_info.value.error_code == "token_expired"
        assert exc_info.value.status_code == 401


class TestRevokeLongSession:
    @pytest.mark.asyncio
    async def test_revokes_active_session(self, token_service, mock_db):
        session = _session()
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(return_value=session)
            mock_repo.mark_revoked = AsyncMock()

            await token_service.revoke_long_session(mock_db, "token")

            mock_repo.mark_revoked.assert_awaited_once_with(mock_db, session)

    @pytest.mark.asyncio
    async def test_revoking_twice_is_a_no_op(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(
                return_value=_session(status=SessionStatus.REVOKED)
            )
            mock_repo.mark_revoked = AsyncMock()

            await token_service.revoke_long_session(mock_db, "token")

            mock_repo.mark_revoked.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revoking_the_same_session_twice(self, token_service, mock_db):
        session = _session()

        def mark_revoked(db, stored):
            stored.status = SessionStatus.REVOKED
            return stored

        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(return_value=session)
            mock_repo.mark_revoked = AsyncMock(side_effect=mark_revoked)

            assert await token_service.revoke_long_session(mock_db, "token") is None
            assert await token_service.revoke_long_session(mock_db, "token") is None

            mock_repo.mark_revoked.assert_awaited_once_with(mock_db, session)
            assert session.status is SessionStatus.REVOKED

            with pytest.raises(InvalidTokenError):
                await token_service.validate_long_session(mock_db, "token")

    @pytest.mark.asyncio
    async def test_unknown_token_is_not_found(self, token_service, mock_db):
        with patch("schoolhub.modules.tokens.service.repository") as mock_repo:
            mock_repo.get_by_token_hash = AsyncMock(return_value=None)

            with pytest.raises(TokenNotFoundError) as exc_info:
                await token_service.revoke_long_session(mock_db, "token")

        assert exc_info.value.status_code == 404
