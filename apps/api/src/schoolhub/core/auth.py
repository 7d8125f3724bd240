"""
Request Authentication and Guarding

FastAPI dependencies that turn an incoming request into a RequestContext:

1. Authenticate: an optional Bearer access token is verified and turned into
   a Principal. A missing or invalid token yields an anonymous request; the
   role check below decides whether that is acceptable.
2. Role check: the action's allowed roles are evaluated before anything is
   read from the database, so a forbidden caller learns nothing about which
   resources exist.
3. Rate limit: counted per user ID, or per client IP for anonymous callers.
   Forwarding headers only count when sent by a configured trusted proxy.

Tenant ownership is checked later by the service, once the target resource
has been fetched.

Usage:
    @router.post("/{transfer_id}/approve")
    async def approve(
        ctx: RequestContext = Depends(guard(Action.TRANSFER_REQUESTS_APPROVE)),
        ...
    ):
"""

import logging
from collections.abc import Awaitable, Callable, Collection
from dataclasses import dataclass

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from schoolhub.core.authorization import Principal, ensure_authorized
from schoolhub.core.container import Services
from schoolhub.core.errors import ForbiddenError, UnauthorizedError
from schoolhub.core.policy import Action
from schoolhub.core.rate_limit import RateLimitOutcome
from schoolhub.modules.tokens.service import TokenService

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="Short-lived access token",
)


@dataclass(frozen=True)
class RequestContext:
    """
    Per-request caller information handed to route handlers.

    Attributes:
        principal: Authenticated caller, None for anonymous requests
        client_ip: Client network address
        user_agent: Client User-Agent header
        rate_limit: Outcome of the rate limit check, None if not limited
    """

    principal: Principal | None
    client_ip: str | None
    user_agent: str | None
    rate_limit: RateLimitOutcome | None = None

    def require_principal(self) -> Principal:
        """Return the principal or raise 401 for anonymous requests."""
        if self.principal is None:
            raise UnauthorizedError()
        return self.principal


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the service container."""
    return request.app.state.services


def get_client_ip(request: Request, trusted_proxies: Collection[str] = ()) -> str | None:
    """
    Extract the client IP.

    X-Forwarded-For is only read when the direct peer is a trusted proxy.
    The chain is walked from the right and the first hop that is not itself
    a trusted proxy is the client; anything left of it is client-supplied.
    """
    peer = request.client.host if request.client else None
    forwarded_for = request.headers.get("X-Forwarded-For")
    if not forwarded_for or peer not in trusted_proxies:
        return peer

    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return hops[0] if hops else peer


def resolve_principal(
    tokens: TokenService,
    credentials: HTTPAuthorizationCredentials | None,
) -> Principal | None:
    """
    Verify a Bearer access token and build the caller's Principal.

    Returns:
        Principal, or None if no token was sent or it failed verification
    """
    if credentials is None or not credentials.credentials:
        return None

    try:
        claims = tokens.verify_access_token(credentials.credentials)
    except UnauthorizedError:
        return None

    return Principal(user_id=claims.sub, role=claims.role, school_id=claims.school_id)


def guard(action: Action) -> Callable[..., Awaitable[RequestContext]]:
    """
    Build the dependency enforcing an action's policy.

    Args:
        action: Action the route implements

    Returns:
        FastAPI dependency resolving to a RequestContext
    """

    async def dependency(
        request: Request,
        response: Response,
        credentials: HTTPAuthorizationCredentials | None = Depends(security),
    ) -> RequestContext:
        services: Services = request.app.state.services
        policy = services.policies[action]

        principal = resolve_principal(services.tokens, credentials)
        client_ip = get_client_ip(request, services.settings.trusted_proxies_set)

        try:
            ensure_authorized(principal, policy.allowed_roles)
        except UnauthorizedError:
            logger.info(f"Unauthenticated call to {action.value} from {client_ip}")
            raise
        except ForbiddenError:
            logger.warning(f"Access denied: {principal} on {action.value}")
            raise

        outcome = None
        if policy.rate_limit is not None:
            identity = principal.user_id if principal else (client_ip or "unknown")
            outcome = await services.rate_limiter.enforce(identity, action, policy.rate_limit)
            response.headers.update(outcome.headers)

        return RequestContext(
            principal=principal,
            client_ip=client_ip,
            user_agent=request.headers.get("User-Agent"),
            rate_limit=outcome,
        )

    dependency.__name__ = f"guard_{action.name.lower()}"
    return dependency


__all__ = [
    "RequestContext",
    "get_client_ip",
    "get_services",
    "guard",
    "resolve_principal",
    "security",
]
