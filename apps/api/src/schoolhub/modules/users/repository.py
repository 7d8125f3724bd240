"""
User Repository

Lookups and inserts for admin accounts. Emails are stored and matched in
lower case.
"""

import logging

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        school_id: str | None = None,
        is_active: bool = True,
    ) -> User:
        """
        Insert an account and flush it; the caller commits.

        A superadmin never carries a school_id, whatever the caller passes.

        Raises:
            IntegrityError: If the email is already registered
        """
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            school_id=None if role is UserRole.SUPERADMIN else school_id,
            is_active=is_active,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created {user.role.value} account {user.id}")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(select(User).where(User.id == str(user_id)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Case-insensitive lookup by email."""
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def superadmin_exists(db: AsyncSession) -> bool:
        """True once the first-run superadmin has been created."""
        result = await db.execute(select(exists().where(User.role == UserRole.SUPERADMIN)))
        return bool(result.scalar())
