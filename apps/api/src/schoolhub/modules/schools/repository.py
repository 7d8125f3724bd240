"""
School Repository

Database operations for school management.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.modules.schools.models import School

logger = logging.getLogger(__name__)


class SchoolRepository:
    """Repository for school database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        code: str,
        created_by: str,
        address: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        max_capacity: int = 0,
    ) -> School:
        """
        Create a new school record.

        Args:
            db: Database session
            name: School name (unique)
            code: Short school code (unique, stored upper-case)
            created_by: ID of the superadmin creating the school
            address: Postal address (optional)
            phone: School phone number (optional)
            email: School email address (optional)
            max_capacity: Maximum number of students, 0 for unlimited

        Returns:
            Created School instance

        Raises:
            IntegrityError: If the name or code is already taken
        """
        school = School(
            name=name,
            code=code.upper(),
            address=address,
            phone=phone,
            email=email,
            max_capacity=max_capacity,
            created_by=created_by,
        )

        db.add(school)
        await db.flush()
        await db.refresh(school)

        logger.info(f"Created school: {school.id} - {school.code}")
        return school

    @staticmethod
    async def get_by_id(db: AsyncSession, school_id: str) -> School | None:
        """
        Get a live (not soft-deleted) school by ID.

        Args:
            db: Database session
            school_id: School UUID

        Returns:
            School instance or None if not found or deleted
        """
        result = await db.execute(
            select(School).where(School.id == str(school_id), School.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_page(
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[School], int]:
        """
        List live schools ordered by name.

        Returns:
            Tuple of (schools on this page, total live schools)
        """
        query = select(School).where(School.deleted_at.is_(None))

        total_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = total_result.scalar() or 0

        result = await db.execute(query.order_by(School.name).offset(skip).limit(limit))
        return list(result.scalars().all()), total

    @staticmethod
    async def update(db: AsyncSession, school: School, **fields) -> School:
        """
        Apply field updates to a school.

        Only attributes that exist on the model are set; code is upper-cased.
        """
        if fields.get("code"):
            fields["code"] = fields["code"].upper()

        for key, value in fields.items():
            if hasattr(school, key):
                setattr(school, key, value)

        await db.flush()
        await db.refresh(school)
        return school

    @staticmethod
    async def soft_delete(db: AsyncSession, school: School) -> School:
        """Mark a school as deleted."""
        school.deleted_at = datetime.now(UTC)

        await db.flush()

        logger.info(f"Soft-deleted school {school.id}")
        return school
