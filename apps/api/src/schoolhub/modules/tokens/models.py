"""
Token Models

Persisted long-lived sessions. Short-lived access tokens are stateless JWTs
and have no table.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.modules.shared import BaseModel


class SessionStatus(str, enum.Enum):
    """Status of a long-lived session."""

    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class LongSession(BaseModel):
    """
    Long-lived session created on login.

    The opaque token is handed to the client once; only its SHA-256 hash is
    stored. Status only ever moves from ACTIVE to REVOKED, and rows are never
    deleted so that device history survives logout.
    """

    __tablename__ = "long_sessions"

    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Originating client
    device: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ip: Mapped[str | None] = mapped_column(String(45), nullable=True)

    status: Mapped[SessionStatus] = mapped_column(
        ENUM(
            SessionStatus,
            name="session_status",
            create_type=True,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
        default=SessionStatus.ACTIVE,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_long_sessions_user_id", "user_id"),)

    def __repr__(self) -> str:
        return f"<LongSession(id={self.id}, user_id={self.user_id}, status={self.status.value})>"
