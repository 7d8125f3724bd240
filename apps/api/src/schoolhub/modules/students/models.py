"""
Student Models

Database models for students. A student belongs to one school at a time
and optionally to one of its classrooms; transfers move both.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.modules.shared import BaseModel, SoftDeleteMixin


class Student(SoftDeleteMixin, BaseModel):
    """
    Student record.

    student_number is assigned once at creation from the school's sequence
    counter (e.g. GWH-2026-0007) and does not change on transfer.
    """

    __tablename__ = "students"

    student_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    classroom_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classrooms.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, number={self.student_number}, school_id={self.school_id})>"
