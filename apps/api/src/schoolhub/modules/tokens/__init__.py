"""
Tokens module - Long-lived sessions and short-lived access tokens.
"""

from schoolhub.modules.tokens.models import LongSession, SessionStatus
from schoolhub.modules.tokens.service import (
    AccessTokenClaims,
    InvalidTokenError,
    IssuedToken,
    TokenExpiredError,
    TokenNotFoundError,
    TokenService,
)

__all__ = [
    "AccessTokenClaims",
    "InvalidTokenError",
    "IssuedToken",
    "LongSession",
    "SessionStatus",
    "TokenExpiredError",
    "TokenNotFoundError",
    "TokenService",
]
