"""
Audit Log Models

Append-only record of administrative changes.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.core.database import Base


class AuditAction(str, enum.Enum):
    """What happened to the resource."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    TRANSFER = "transfer"


class AuditResource(str, enum.Enum):
    """Kind of resource the entry refers to."""

    SCHOOL = "school"
    CLASSROOM = "classroom"
    STUDENT = "student"
    TRANSFER_REQUEST = "transferRequest"
    USER = "user"


class AuditLog(Base):
    """
    One audited change.

    changes holds {"before": ..., "after": ...}; either side may be null
    (creation has no before, deletion no after).
    """

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    )
    actor_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    action: Mapped[AuditAction] = mapped_column(
        ENUM(
            AuditAction,
            name="audit_action",
            create_type=True,
            values_callable=lambda actions: [action.value for action in actions],
        ),
        nullable=False,
    )
    resource: Mapped[AuditResource] = mapped_column(
        ENUM(
            AuditResource,
            name="audit_resource",
            create_type=True,
            values_callable=lambda resources: [resource.value for resource in resources],
        ),
        nullable=False,
    )
    resource_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    changes: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    # Originating client
    ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_audit_logs_resource", "resource", "resource_id"),
        Index("ix_audit_logs_actor_id", "actor_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, {self.action.value} {self.resource.value} "
            f"{self.resource_id} by {self.actor_id})>"
        )
