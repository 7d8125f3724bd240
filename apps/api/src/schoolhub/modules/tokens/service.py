"""
Token Service

Issues, verifies, refreshes and revokes the two credentials used by the API:

1. Long-lived session tokens:
   - 256-bit random opaque strings handed out on login
   - Persisted (as a SHA-256 hash) with device and IP of the originating client
   - Revocable on logout; revocation is idempotent
   - Used only to mint new access tokens

2. Short-lived access tokens:
   - JWTs signed with the configured secret (python-jose)
   - Carry user id, role, school and a random nonce (jti) so two tokens minted
     in the same second for the same user still differ
   - Verified without a storage round trip and never revoked; they simply
     expire

Security considerations:
- A revoked session and a session that never existed produce the same
  invalid_token error, so callers cannot tell which tokens were ever issued
- Expiry of a long session is decided by expires_at, whatever its stored status
- Token values are never logged
"""

import hashlib
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.config import Settings
from schoolhub.core.errors import NotFoundError, UnauthorizedError
from schoolhub.modules.tokens import repository
from schoolhub.modules.tokens.models import SessionStatus
from schoolhub.modules.users.models import UserRole

logger = logging.getLogger(__name__)

LONG_TOKEN_BYTES = 32
NONCE_BYTES = 8


def _hash_token(token: str) -> str:
    """
    Hash a long token for storage using SHA-256.

    Args:
        token: The plain token value

    Returns:
        Hex-encoded SHA-256 hash of the token
    """
    return hashlib.sha256(token.encode()).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InvalidTokenError(UnauthorizedError):
    """Raised when a token is unknown, revoked, tampered with or malformed."""

    def __init__(self):
        super().__init__(error_code="invalid_token", message="Invalid or revoked token.")


class TokenExpiredError(UnauthorizedError):
    """Raised when a long session has passed its expiry."""

    def __init__(self):
        super().__init__(error_code="token_expired", message="Token has expired.")


class TokenNotFoundError(NotFoundError):
    """Raised when revoking a token that was never issued."""

    def __init__(self):
        super().__init__("token")


@dataclass(frozen=True)
class IssuedToken:
    """A freshly minted token and its absolute expiry."""

    token: str
    expires_at: datetime


class AccessTokenClaims(BaseModel):
    """
    Claims embedded in a short-lived access token.

    Attributes:
        sub: User ID
        role: User role at the time the token was minted
        school_id: School of a school admin, None for superadmins
        jti: Random nonce
        type: Always "access"
        iat: Issued-at timestamp
        exp: Expiry timestamp
    """

    sub: str
    role: UserRole
    school_id: str | None = None
    jti: str
    type: Literal["access"]
    iat: int
    exp: int


class TokenService:
    """
    Long session and access token lifecycle.

    Args:
        settings: Application settings (signing key, algorithm, TTLs)
        clock: Returns the current aware UTC datetime
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utcnow):
        self._secret = settings.access_token_secret.get_secret_value()
        self._algorithm = settings.access_token_algorithm
        self._short_ttl = settings.short_token_ttl
        self._long_ttl = settings.long_token_ttl
        self._clock = clock

    async def create_long_session(
        self,
        db: AsyncSession,
        user_id: str,
        device: str | None = None,
        ip: str | None = None,
    ) -> IssuedToken:
        """
        Create and persist a new long-lived session.

        Args:
            db: Database session
            user_id: Owning user
            device: Originating device descriptor (e.g. user agent)
            ip: Originating network address

        Returns:
            IssuedToken with the plain token value and its expiry
        """
        token = secrets.token_hex(LONG_TOKEN_BYTES)
        expires_at = self._clock() + self._long_ttl

        await repository.create(
            db,
            token_hash=_hash_token(token),
            user_id=user_id,
            device=device,
            ip=ip,
            expires_at=expires_at,
        )

        logger.info(f"Created long session for user {user_id}")
        return IssuedToken(token=token, expires_at=expires_at)

    def create_access_token(
        self,
        user_id: str,
        role: UserRole,
        school_id: str | None = None,
    ) -> IssuedToken:
        """
        Mint a signed short-lived access token.

        Args:
            user_id: User the token is issued to
            role: Role claim
            school_id: School claim (school admins only)

        Returns:
            IssuedToken with the encoded JWT and its expiry
        """
        now = self._clock()
        expires_at = now + self._short_ttl

        payload = {
            "sub": str(user_id),
            "role": UserRole(role).value,
            "school_id": str(school_id) if school_id else None,
            "jti": secrets.token_hex(NONCE_BYTES),
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }

        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    async def revoke_long_session(self, db: AsyncSession, token: str) -> None:
        """
        Revoke a long session.

        Revoking an already revoked session succeeds without writing.

        Raises:
            TokenNotFoundError: If no session was ever issued for the token
        """
        session = await repository.get_by_token_hash(db, _hash_token(token))

        if not session:
            logger.warning("Revocation requested for unknown long token")
            raise TokenNotFoundError()

        if session.status == SessionStatus.REVOKED:
            return

        await repository.mark_revoked(db, session)
        logger.info(f"Revoked long session {session.id} for user {session.user_id}")

    async def validate_long_session(self, db: AsyncSession, token: str) -> str:
        """
        Validate a long token and return the owning user ID.

        Raises:
            InvalidTokenError: If the session does not exist or is not active
            TokenExpiredError: If the session is active but past expires_at
        """
        session = await repository.get_by_token_hash(db, _hash_token(token))

        if not session or session.status != SessionStatus.ACTIVE:
            raise InvalidTokenError()

        if session.expires_at < self._clock():
            raise TokenExpiredError()

        return session.user_id

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """
        Verify signature, expiry and shape of an access token.

        Raises:
            InvalidTokenError: On any verification failure
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            return AccessTokenClaims.model_validate(payload)
        except ExpiredSignatureError as e:
            logger.debug("Access token expired")
            raise InvalidTokenError() from e
        except (JWTError, ValidationError) as e:
            logger.warning(f"Access token rejected: {type(e).__name__}")
            raise InvalidTokenError() from e
