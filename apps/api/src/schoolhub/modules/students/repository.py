"""
Student Repository

Database operations for students. Every read ignores soft-deleted rows.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.modules.students.models import Student

logger = logging.getLogger(__name__)


class StudentRepository:
    """Repository for student database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        student_number: str,
        first_name: str,
        last_name: str,
        email: str,
        school_id: str,
        classroom_id: str | None = None,
    ) -> Student:
        """
        Create a new student.

        Raises:
            IntegrityError: If the email or student number is already taken
        """
        student = Student(
            student_number=student_number,
            first_name=first_name,
            last_name=last_name,
            email=email.lower(),
            school_id=str(school_id),
            classroom_id=str(classroom_id) if classroom_id else None,
        )

        db.add(student)
        await db.flush()
        await db.refresh(student)

        logger.info(f"Created student: {student.id} - {student.student_number}")
        return student

    @staticmethod
    async def get_by_id(db: AsyncSession, student_id: str) -> Student | None:
        """Get a live student by ID."""
        result = await db.execute(
            select(Student).where(
                Student.id == str(student_id),
                Student.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Student | None:
        """Get a student by email, including soft-deleted ones (email stays unique)."""
        result = await db.execute(select(Student).where(Student.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_page(
        db: AsyncSession,
        *,
        school_id: str,
        classroom_id: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Student], int]:
        """
        List live students of a school, optionally of one classroom.

        Returns:
            Tuple of (students on this page, total matching students)
        """
        query = select(Student).where(
            Student.school_id == str(school_id),
            Student.deleted_at.is_(None),
        )
        if classroom_id:
            query = query.where(Student.classroom_id == str(classroom_id))

        total_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = total_result.scalar() or 0

        result = await db.execute(
            query.order_by(Student.last_name, Student.first_name).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def count_in_school(db: AsyncSession, school_id: str) -> int:
        """Number of live students in a school."""
        result = await db.execute(
            select(func.count(Student.id)).where(
                Student.school_id == str(school_id),
                Student.deleted_at.is_(None),
            )
        )
        return result.scalar() or 0

    @staticmethod
    async def count_in_classroom(db: AsyncSession, classroom_id: str) -> int:
        """Number of live students in a classroom."""
        result = await db.execute(
            select(func.count(Student.id)).where(
                Student.classroom_id == str(classroom_id),
                Student.deleted_at.is_(None),
            )
        )
        return result.scalar() or 0

    @staticmethod
    async def update(db: AsyncSession, student: Student, **fields) -> Student:
        """Apply field updates to a student."""
        if fields.get("email"):
            fields["email"] = fields["email"].lower()

        for key, value in fields.items():
            if hasattr(student, key):
                setattr(student, key, value)

        await db.flush()
        await db.refresh(student)
        return student

    @staticmethod
    async def move_to_school(
        db: AsyncSession,
        student_id: str,
        *,
        school_id: str,
        classroom_id: str | None,
    ) -> bool:
        """
        Reassign a live student's school and classroom.

        Runs in the caller's transaction; nothing is committed here.

        Returns:
            True if a live student was updated
        """
        result = await db.execute(
            update(Student)
            .where(Student.id == str(student_id), Student.deleted_at.is_(None))
            .values(
                school_id=str(school_id),
                classroom_id=str(classroom_id) if classroom_id else None,
            )
            .returning(Student.id)
            .execution_options(synchronize_session="fetch")
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def soft_delete(db: AsyncSession, student: Student) -> Student:
        """Mark a student as deleted."""
        student.deleted_at = datetime.now(UTC)

        await db.flush()

        logger.info(f"Soft-deleted student {student.id}")
        return student
