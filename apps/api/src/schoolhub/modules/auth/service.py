"""
Authentication Service Layer

Login, logout, token refresh and first-run superadmin setup, on top of the
TokenService.

Flows:
1. Setup: while no superadmin exists, anyone may create one. Afterwards the
   endpoint answers 404 as if it did not exist.
2. Login: email + password -> long session token + access token. Unknown
   email and wrong password produce the same invalid_credentials error.
3. Refresh: long token -> new access token. The user is re-read on every
   refresh, so the new token carries the user's current role and school,
   and a deleted or deactivated user can no longer refresh (invalid_user).
4. Logout: revokes the long session. Access tokens already issued stay
   valid until they expire.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext
from schoolhub.core.errors import ForbiddenError, ServiceError, UnauthorizedError
from schoolhub.core.security import hash_password, verify_password
from schoolhub.modules.auth.schemas import LoginRequest, SetupSuperadminRequest
from schoolhub.modules.schools.service import UserAlreadyExistsError
from schoolhub.modules.tokens.service import IssuedToken, TokenService
from schoolhub.modules.users.models import User, UserRole
from schoolhub.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class SetupUnavailableError(ServiceError):
    """Raised when a superadmin already exists."""

    def __init__(self):
        super().__init__(message="Not found.", error_code="not_found", status_code=404)


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self):
        super().__init__(error_code="invalid_credentials", message="Invalid email or password.")


class InvalidUserError(UnauthorizedError):
    """Raised when the user behind a valid token is gone or deactivated."""

    def __init__(self):
        super().__init__(
            error_code="invalid_user",
            message="User no longer exists or is inactive.",
        )


class AccountInactiveError(ForbiddenError):
    def __init__(self):
        super().__init__(error_code="account_inactive", message="Your account has been deactivated.")


@dataclass(frozen=True)
class LoginResult:
    long_token: IssuedToken
    access_token: IssuedToken
    user: User


def _issue_access_token(tokens: TokenService, user: User) -> IssuedToken:
    return tokens.create_access_token(user.id, user.role, user.school_id)


async def setup_superadmin(db: AsyncSession, data: SetupSuperadminRequest) -> User:
    """
    Create the first superadmin.

    Raises:
        SetupUnavailableError: If a superadmin already exists
        UserAlreadyExistsError: If the email is taken
    """
    if await UserRepository.superadmin_exists(db):
        logger.warning("Superadmin setup attempted after setup was completed")
        raise SetupUnavailableError()

    if await UserRepository.get_by_email(db, data.email):
        raise UserAlreadyExistsError()

    try:
        user = await UserRepository.create(
            db,
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            role=UserRole.SUPERADMIN,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise UserAlreadyExistsError() from e

    logger.info(f"Superadmin created: {user.id}")
    return user


async def login(
    db: AsyncSession,
    tokens: TokenService,
    ctx: RequestContext,
    data: LoginRequest,
) -> LoginResult:
    """
    Authenticate with email and password.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        AccountInactiveError: The account has been deactivated
    """
    user = await UserRepository.get_by_email(db, data.email)

    if not user or not verify_password(data.password, user.password_hash):
        logger.warning(f"Failed login for {data.email} from {ctx.client_ip}")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {user.id}")
        raise AccountInactiveError()

    long_token = await tokens.create_long_session(
        db,
        user.id,
        device=ctx.user_agent,
        ip=ctx.client_ip,
    )
    access_token = _issue_access_token(tokens, user)

    logger.info(f"User logged in: {user.id} (role: {user.role.value})")
    return LoginResult(long_token=long_token, access_token=access_token, user=user)


async def logout(db: AsyncSession, tokens: TokenService, long_token: str) -> None:
    """
    Revoke a long session. Logging out twice succeeds.

    Raises:
        TokenNotFoundError: If the token was never issued
    """
    await tokens.revoke_long_session(db, long_token)


async def refresh(db: AsyncSession, tokens: TokenService, long_token: str) -> IssuedToken:
    """
    Mint a new access token from a long session.

    Raises:
        InvalidTokenError: If the session is unknown or revoked
        TokenExpiredError: If the session has expired
        InvalidUserError: If the user is gone or inactive
    """
    user_id = await tokens.validate_long_session(db, long_token)

    user = await UserRepository.get_by_id(db, user_id)
    if not user or not user.is_active:
        logger.warning(f"Refresh refused for missing or inactive user {user_id}")
        raise InvalidUserError()

    return _issue_access_token(tokens, user)


async def me(db: AsyncSession, ctx: RequestContext) -> User:
    """
    Return the authenticated user.

    Raises:
        InvalidUserError: If the user behind the token is gone or inactive
    """
    principal = ctx.require_principal()

    user = await UserRepository.get_by_id(db, principal.user_id)
    if not user or not user.is_active:
        raise InvalidUserError()
    return user
