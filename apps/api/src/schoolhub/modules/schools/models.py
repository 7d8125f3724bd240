"""
School Models

Database models for school (tenant) management.
Each school is a tenant in the multi-tenant architecture.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolhub.modules.shared import BaseModel, SoftDeleteMixin

if TYPE_CHECKING:
    from schoolhub.modules.users.models import User


class School(SoftDeleteMixin, BaseModel):
    """
    School tenant model.

    All school-scoped data (admins, classrooms, students) references this
    model via school_id. The short code prefixes human-readable student
    numbers, e.g. GWH-2026-0001.
    """

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )
    code: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        unique=True,
    )

    # Contact information
    address: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # 0 = unlimited
    max_capacity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Note: no FK to users, schools and users reference each other
    created_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        nullable=True,
    )

    # Relationships
    admins: Mapped[list["User"]] = relationship(
        "User",
        back_populates="school",
        foreign_keys="User.school_id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, code={self.code}, name={self.name})>"
