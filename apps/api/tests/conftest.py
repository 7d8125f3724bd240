"""
Shared fixtures.

ORM rows are stood in for by SimpleNamespace objects carrying the same
attributes, which the response schemas read through from_attributes.
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from schoolhub.core.auth import RequestContext
from schoolhub.core.authorization import Principal
from schoolhub.core.config import Settings
from schoolhub.modules.transfer_requests.models import TransferStatus
from schoolhub.modules.users.models import UserRole


def new_id() -> str:
    return str(uuid4())


@pytest.fixture
def settings():
    return Settings(
        python_env="test",
        access_token_secret="test-secret-key-with-enough-entropy",
    )


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.incr = AsyncMock(return_value=1)
    redis.expire = AsyncMock(return_value=True)
    return redis


class CountingRedis:
    """In-memory stand-in for the INCR/EXPIRE pair the rate limiter uses."""

    def __init__(self):
        self.counts: dict[str, int] = {}
        self.expiries: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self.expiries[key] = seconds
        return True


@pytest.fixture
def counting_redis():
    return CountingRedis()


@pytest.fixture
def audit():
    """Audit trail double; record() is awaited by every mutating service."""
    trail = MagicMock()
    trail.record = AsyncMock()
    return trail


@pytest.fixture
def school_id():
    return new_id()


@pytest.fixture
def other_school_id():
    return new_id()


@pytest.fixture
def superadmin():
    return Principal(user_id=new_id(), role=UserRole.SUPERADMIN)


@pytest.fixture
def school_admin(school_id):
    return Principal(user_id=new_id(), role=UserRole.SCHOOL_ADMIN, school_id=school_id)


@pytest.fixture
def make_ctx():
    def _make(principal: Principal | None) -> RequestContext:
        return RequestContext(principal=principal, client_ip="10.0.0.1", user_agent="pytest")

    return _make


@pytest.fixture
def superadmin_ctx(make_ctx, superadmin):
    return make_ctx(superadmin)


@pytest.fixture
def school_admin_ctx(make_ctx, school_admin):
    return make_ctx(school_admin)


@pytest.fixture
def make_school(school_id):
    def _make(**overrides) -> SimpleNamespace:
        now = datetime.now(UTC)
        fields = {
            "id": school_id,
            "name": "Greenwood High",
            "code": "GWH",
            "address": None,
            "phone": None,
            "email": None,
            "max_capacity": 0,
            "created_by": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        fields.update(overrides)
        return SimpleNamespace(**fields)

    return _make


@pytest.fixture
def make_classroom(school_id):
    def _make(**overrides) -> SimpleNamespace:
        now = datetime.now(UTC)
        fields = {
            "id": new_id(),
            "school_id": school_id,
            "name": "Form 1A",
            "capacity": 30,
            "resources": ["projector"],
            "created_by": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        fields.update(overrides)
        return SimpleNamespace(**fields)

    return _make


@pytest.fixture
def make_student(school_id):
    def _make(**overrides) -> SimpleNamespace:
        now = datetime.now(UTC)
        fields = {
            "id": new_id(),
            "student_number": "GWH-2026-0001",
            "first_name": "Ama",
            "last_name": "Mensah",
            "email": "ama.mensah@example.com",
            "school_id": school_id,
            "classroom_id": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        fields.update(overrides)
        return SimpleNamespace(**fields)

    return _make


@pytest.fixture
def make_transfer(school_id, other_school_id):
    def _make(**overrides) -> SimpleNamespace:
        now = datetime.now(UTC)
        fields = {
            "id": new_id(),
            "student_id": new_id(),
            "from_school_id": school_id,
            "to_school_id": other_school_id,
            "to_classroom_id": None,
            "requested_by": new_id(),
            "status": TransferStatus.PENDING,
            "responded_by": None,
            "responded_at": None,
            "snapshot": {
                "first_name": "Ama",
                "last_name": "Mensah",
                "email": "ama.mensah@example.com",
                "student_number": "GWH-2026-0001",
                "classroom_name": None,
            },
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return SimpleNamespace(**fields)

    return _make


@pytest.fixture
def make_user(school_id):
    def _make(**overrides) -> SimpleNamespace:
        now = datetime.now(UTC)
        fields = {
            "id": new_id(),
            "email": "admin@example.com",
            "first_name": "Kofi",
            "last_name": "Boateng",
            "password_hash": "not-a-real-hash",
            "role": UserRole.SCHOOL_ADMIN,
            "school_id": school_id,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return SimpleNamespace(**fields)

    return _make
