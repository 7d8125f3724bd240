"""
Classroom Repository

Database operations for classrooms. Every read ignores soft-deleted rows.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.modules.classrooms.models import Classroom

logger = logging.getLogger(__name__)


class ClassroomRepository:
    """Repository for classroom database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        school_id: str,
        name: str,
        capacity: int,
        resources: list[str],
        created_by: str,
    ) -> Classroom:
        """
        Create a new classroom.

        Raises:
            IntegrityError: If a live classroom with the same name exists in the school
        """
        classroom = Classroom(
            school_id=str(school_id),
            name=name,
            capacity=capacity,
            resources=list(resources),
            created_by=str(created_by),
        )

        db.add(classroom)
        await db.flush()
        await db.refresh(classroom)

        logger.info(f"Created classroom: {classroom.id} - {classroom.name} in school {school_id}")
        return classroom

    @staticmethod
    async def get_by_id(db: AsyncSession, classroom_id: str) -> Classroom | None:
        """Get a live classroom by ID."""
        result = await db.execute(
            select(Classroom).where(
                Classroom.id == str(classroom_id),
                Classroom.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_name(db: AsyncSession, school_id: str, name: str) -> Classroom | None:
        """Get a live classroom of a school by name."""
        result = await db.execute(
            select(Classroom).where(
                Classroom.school_id == str(school_id),
                Classroom.name == name,
                Classroom.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_page(
        db: AsyncSession,
        *,
        school_id: str,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Classroom], int]:
        """
        List live classrooms of a school ordered by name.

        Returns:
            Tuple of (classrooms on this page, total live classrooms in the school)
        """
        query = select(Classroom).where(
            Classroom.school_id == str(school_id),
            Classroom.deleted_at.is_(None),
        )

        total_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = total_result.scalar() or 0

        result = await db.execute(query.order_by(Classroom.name).offset(skip).limit(limit))
        return list(result.scalars().all()), total

    @staticmethod
    async def update(db: AsyncSession, classroom: Classroom, **fields) -> Classroom:
        """Apply field updates to a classroom."""
        for key, value in fields.items():
            if hasattr(classroom, key):
                setattr(classroom, key, value)

        await db.flush()
        await db.refresh(classroom)
        return classroom

    @staticmethod
    async def soft_delete(db: AsyncSession, classroom: Classroom) -> Classroom:
        """Mark a classroom as deleted."""
        classroom.deleted_at = datetime.now(UTC)

        await db.flush()

        logger.info(f"Soft-deleted classroom {classroom.id}")
        return classroom
