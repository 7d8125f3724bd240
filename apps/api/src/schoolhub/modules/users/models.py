"""
User Models

Admin accounts. Only two kinds exist: the unscoped superadmin and the
school admin bound to exactly one school.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolhub.modules.shared import BaseModel

if TYPE_CHECKING:
    from schoolhub.modules.schools.models import School


class UserRole(str, Enum):
    """Account roles. Values are the wire names used in tokens and responses."""

    SUPERADMIN = "superadmin"
    SCHOOL_ADMIN = "schoolAdmin"

    @property
    def is_tenant_scoped(self) -> bool:
        """School admins only act within their own school."""
        return self is UserRole.SCHOOL_ADMIN


class User(BaseModel):
    """
    Admin account.

    school_id is NULL for superadmins and set for school admins. A deactivated
    account keeps its row but can no longer sign in or refresh tokens.
    """

    __tablename__ = "users"

    # SET NULL keeps the account if its school row is ever removed
    school_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        ENUM(
            UserRole,
            name="user_role",
            create_type=True,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=UserRole.SCHOOL_ADMIN,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    school: Mapped["School | None"] = relationship(
        "School",
        back_populates="admins",
        foreign_keys=[school_id],
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role.value}, school_id={self.school_id})>"
