"""
Transfer Request Models

A transfer request proposes moving a student from one school to another.
It is created PENDING and resolved exactly once, to APPROVED or REJECTED.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.modules.shared import BaseModel


class TransferStatus(str, enum.Enum):
    """Transfer request workflow status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransferRequest(BaseModel):
    """
    Transfer request with a write-once snapshot of the student.

    The snapshot captures first_name, last_name, email, student_number and
    classroom_name as they were when the request was proposed; it is never
    updated afterwards, whatever happens to the student record.

    At most one PENDING request per student is enforced by the partial unique
    index uq_transfer_requests_student_pending.
    """

    __tablename__ = "transfer_requests"

    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    to_school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    to_classroom_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classrooms.id", ondelete="SET NULL"),
        nullable=True,
    )

    requested_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[TransferStatus] = mapped_column(
        ENUM(
            TransferStatus,
            name="transfer_status",
            create_type=True,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
        default=TransferStatus.PENDING,
    )

    # Set once, on approval or rejection
    responded_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    snapshot: Mapped[dict] = mapped_column(JSONB, nullable=False)

    __table_args__ = (
        Index("ix_transfer_requests_student_id", "student_id"),
        Index(
            "uq_transfer_requests_student_pending",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<TransferRequest(id={self.id}, student_id={self.student_id}, "
            f"status={self.status.value})>"
        )
