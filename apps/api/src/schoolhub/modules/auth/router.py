"""
Authentication Router

Endpoints:
- POST /auth/setup-superadmin - Create the first superadmin (first run only)
- POST /auth/login - Exchange credentials for a long token and an access token
- POST /auth/logout - Revoke a long token
- POST /auth/refresh - Exchange a long token for a new access token
- GET /auth/me - Current user
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext, get_services, guard
from schoolhub.core.container import Services
from schoolhub.core.database import get_db
from schoolhub.core.policy import Action
from schoolhub.modules.auth import service
from schoolhub.modules.auth.schemas import (
    AccessTokenResponse,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    LongTokenRequest,
    SetupSuperadminRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/setup-superadmin",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create the first superadmin",
    responses={
        404: {"description": "A superadmin already exists"},
        409: {"description": "Email already in use"},
    },
)
async def setup_superadmin(
    data: SetupSuperadminRequest,
    db: AsyncSession = Depends(get_db),
    _ctx: RequestContext = Depends(guard(Action.AUTH_SETUP_SUPERADMIN)),
) -> UserResponse:
    """Only available until the first superadmin has been created."""
    user = await service.setup_superadmin(db, data)
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    responses={
        401: {"description": "Invalid email or password"},
        403: {"description": "Account inactive"},
        429: {"description": "Too many login attempts"},
    },
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.AUTH_LOGIN)),
    services: Services = Depends(get_services),
) -> LoginResponse:
    """
    Authenticate and open a long-lived session.

    The long token is only used against /auth/refresh and /auth/logout;
    the access token authorizes every other call.
    """
    result = await service.login(db, services.tokens, ctx, data)

    return LoginResponse(
        long_token=result.long_token.token,
        long_token_expires_at=result.long_token.expires_at,
        access_token=result.access_token.token,
        access_token_expires_at=result.access_token.expires_at,
        user=UserResponse.model_validate(result.user),
    )


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Log out",
    responses={404: {"description": "Token was never issued"}},
)
async def logout(
    data: LongTokenRequest,
    db: AsyncSession = Depends(get_db),
    _ctx: RequestContext = Depends(guard(Action.AUTH_LOGOUT)),
    services: Services = Depends(get_services),
) -> LogoutResponse:
    await service.logout(db, services.tokens, data.long_token)
    return LogoutResponse()


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    summary="Refresh the access token",
    responses={401: {"description": "Long token invalid, expired, or user gone"}},
)
async def refresh(
    data: LongTokenRequest,
    db: AsyncSession = Depends(get_db),
    _ctx: RequestContext = Depends(guard(Action.AUTH_REFRESH)),
    services: Services = Depends(get_services),
) -> AccessTokenResponse:
    issued = await service.refresh(db, services.tokens, data.long_token)
    return AccessTokenResponse(access_token=issued.token, expires_at=issued.expires_at)


@router.get("/me", response_model=UserResponse, summary="Current user")
async def me(
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.AUTH_ME)),
) -> UserResponse:
    user = await service.me(db, ctx)
    return UserResponse.model_validate(user)
