"""
Classroom Models

Database models for classrooms (sub-units of a school).
"""

from sqlalchemy import ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.modules.shared import BaseModel, SoftDeleteMixin


class Classroom(SoftDeleteMixin, BaseModel):
    """
    Classroom belonging to exactly one school.

    Names are unique within a school among live classrooms; a soft-deleted
    classroom frees its name.
    """

    __tablename__ = "classrooms"

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    capacity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Free-form list of equipment, e.g. ["projector", "whiteboard"]
    resources: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    created_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index(
            "uq_classrooms_school_id_name_live",
            "school_id",
            "name",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Classroom(id={self.id}, school_id={self.school_id}, name={self.name})>"
