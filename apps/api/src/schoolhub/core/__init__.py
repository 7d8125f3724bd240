"""
Core module - Configuration, database, errors, and password hashing.
"""

from schoolhub.core.config import Settings, get_settings
from schoolhub.core.database import Base, create_engine, create_session_maker, get_db
from schoolhub.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitExceededError,
    ServiceError,
    UnauthorizedError,
)
from schoolhub.core.security import hash_password, verify_password

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "create_engine",
    "create_session_maker",
    # Errors
    "ServiceError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "RateLimitExceededError",
    # Security
    "hash_password",
    "verify_password",
]
