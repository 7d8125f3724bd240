"""
Service Container

All long-lived collaborators of the API are built once at startup and kept
on app.state.services. Dependencies and services read them from there, so
tests can assemble a container with fakes instead of patching module globals.
"""

from dataclasses import dataclass

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.core.config import Settings
from schoolhub.core.policy import ACTION_POLICIES, Action, ActionPolicy
from schoolhub.core.rate_limit import RateLimiter
from schoolhub.modules.audit.service import AuditTrail
from schoolhub.modules.tokens.service import TokenService


@dataclass
class Services:
    """
    Process-wide collaborators.

    Attributes:
        settings: Application settings
        session_maker: Factory for request database sessions
        redis: Redis client, None when unavailable
        tokens: Token service
        rate_limiter: Fixed-window rate limiter
        audit: Audit trail writer
        policies: Per-action policy table
    """

    settings: Settings
    session_maker: async_sessionmaker[AsyncSession]
    redis: Redis | None
    tokens: TokenService
    rate_limiter: RateLimiter
    audit: AuditTrail
    policies: dict[Action, ActionPolicy]


def build_services(
    settings: Settings,
    session_maker: async_sessionmaker[AsyncSession],
    redis: Redis | None,
    policies: dict[Action, ActionPolicy] | None = None,
) -> Services:
    """Assemble the container from its infrastructure pieces."""
    return Services(
        settings=settings,
        session_maker=session_maker,
        redis=redis,
        tokens=TokenService(settings),
        rate_limiter=RateLimiter(redis),
        audit=AuditTrail(session_maker),
        policies=dict(policies if policies is not None else ACTION_POLICIES),
    )
