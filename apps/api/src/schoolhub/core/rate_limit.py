"""
Rate Limiting Module

Fixed-window request counters stored in Redis, keyed by caller identity and
action. The identity is the authenticated user ID, or the client IP for
anonymous calls.

Algorithm (per call to an action with a RateLimitRule):
1. slot = floor(now / window_seconds)
2. key = rl:{identity}:{resource}:{action}:{slot}
3. INCR key; on the first hit of a window set EXPIRE window_seconds + 1 so
   stale windows clean themselves up
4. count > max_requests -> reject with 429

The outcome carries the X-RateLimit-* header values for the response.

AVAILABILITY: if Redis is not configured or a command fails, the limiter
fails open and lets the request through, logging a warning. An outage of the
counting store must not take the API down with it.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from redis.asyncio import Redis
from redis.exceptions import RedisError

from schoolhub.core.errors import RateLimitExceededError
from schoolhub.core.policy import Action, RateLimitRule

logger = logging.getLogger(__name__)

KEY_PREFIX = "rl"


@dataclass(frozen=True)
class RateLimitOutcome:
    """
    Result of counting one request.

    Attributes:
        limit: Maximum requests in the window
        remaining: Requests left in the window, never negative
        reset: Epoch second at which the current window ends
        allowed: Whether the request may proceed
        degraded: True when the counting store was unavailable
    """

    limit: int
    remaining: int
    reset: int
    allowed: bool
    degraded: bool = False

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }


def window_slot(now: float, window_seconds: int) -> int:
    """Index of the fixed window containing now."""
    return math.floor(now / window_seconds)


def rate_limit_key(identity: str, action: Action, slot: int) -> str:
    """Counter key scoped to identity, resource, action and window slot."""
    return f"{KEY_PREFIX}:{identity}:{action.resource}:{action.operation}:{slot}"


class RateLimiter:
    """
    Redis-backed fixed-window rate limiter.

    Args:
        redis_client: Redis client, or None when Redis is not configured
        clock: Returns the current epoch time in seconds
    """

    def __init__(self, redis_client: Redis | None, clock: Callable[[], float] = time.time):
        self._redis = redis_client
        self._clock = clock

    async def hit(self, identity: str, action: Action, rule: RateLimitRule) -> RateLimitOutcome:
        """
        Count one request and decide whether it is within the limit.

        Args:
            identity: User ID or client IP
            action: Action being called
            rule: Limit configured for the action

        Returns:
            RateLimitOutcome
        """
        slot = window_slot(self._clock(), rule.window_seconds)
        reset = (slot + 1) * rule.window_seconds

        if self._redis is None:
            logger.warning(f"Redis unavailable for rate limiting {action.value}, allowing request")
            return RateLimitOutcome(rule.max_requests, rule.max_requests, reset, True, True)

        key = rate_limit_key(identity, action, slot)

        try:
            count = await self._redis.incr(key)
            if count == 1:
                await self._redis.expire(key, rule.window_seconds + 1)
        except (RedisError, OSError, TimeoutError) as e:
            logger.warning(f"Rate limit check failed for {action.value}, allowing request: {e}")
            return RateLimitOutcome(rule.max_requests, rule.max_requests, reset, True, True)

        return RateLimitOutcome(
            limit=rule.max_requests,
            remaining=max(0, rule.max_requests - count),
            reset=reset,
            allowed=count <= rule.max_requests,
        )

    async def enforce(self, identity: str, action: Action, rule: RateLimitRule) -> RateLimitOutcome:
        """
        Count one request and reject it when over the limit.

        Raises:
            RateLimitExceededError: When the limit for this window is exhausted
        """
        outcome = await self.hit(identity, action, rule)

        if not outcome.allowed:
            logger.warning(
                f"Rate limit exceeded for {identity} on {action.value}: "
                f"{rule.max_requests}/{rule.window_seconds}s"
            )
            raise RateLimitExceededError(
                rule.max_requests,
                rule.window_seconds,
                headers={**outcome.headers, "Retry-After": str(rule.window_seconds)},
            )

        return outcome


__all__ = [
    "RateLimitOutcome",
    "RateLimiter",
    "rate_limit_key",
    "window_slot",
]
