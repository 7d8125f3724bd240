"""
Authorization Predicate

A pure allow/deny decision over a caller, the roles an action admits and the
school(s) owning the target resource. The request pipeline evaluates it
without a school to perform the role check before any resource is read;
services evaluate it again with the owning school(s) once the resource has
been fetched.

Order of checks (responses differ, so the order is fixed):
1. No role restriction -> allow
2. No authenticated principal -> unauthorized (401)
3. Role not admitted -> forbidden (403)
4. School admin outside every owning school -> forbidden (403)
"""

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum

from schoolhub.core.errors import ForbiddenError, UnauthorizedError
from schoolhub.modules.users.models import UserRole


class DenyReason(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller, rebuilt from a verified access token per request.

    Attributes:
        user_id: User's unique identifier
        role: User's role
        school_id: School of a school admin, None for superadmins
    """

    user_id: str
    role: UserRole
    school_id: str | None = None

    @property
    def is_tenant_scoped(self) -> bool:
        return self.role.is_tenant_scoped

    def __str__(self) -> str:
        return (
            f"Principal(user_id={self.user_id}, role={self.role.value}, "
            f"school_id={self.school_id})"
        )


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


def authorize(
    principal: Principal | None,
    allowed_roles: Collection[UserRole] | None,
    *resource_school_ids: str | None,
) -> Decision:
    """
    Decide whether a principal may act on a resource.

    Args:
        principal: Authenticated caller, or None for anonymous requests
        allowed_roles: Roles admitted by the action, None for public actions
        *resource_school_ids: Schools owning the resource. A school admin
            passes when it belongs to any of them. With none given, only the
            role is checked.

    Returns:
        Decision
    """
    if allowed_roles is None:
        return Decision.allow()

    if principal is None:
        return Decision.deny(DenyReason.UNAUTHORIZED)

    if principal.role not in allowed_roles:
        return Decision.deny(DenyReason.FORBIDDEN)

    if principal.is_tenant_scoped and resource_school_ids:
        owners = {str(school_id) for school_id in resource_school_ids if school_id is not None}
        if str(principal.school_id) not in owners:
            return Decision.deny(DenyReason.FORBIDDEN)

    return Decision.allow()


def ensure_authorized(
    principal: Principal | None,
    allowed_roles: Collection[UserRole] | None,
    *resource_school_ids: str | None,
) -> None:
    """
    Raise the error matching a deny decision.

    Raises:
        UnauthorizedError: If no principal is present for a restricted action
        ForbiddenError: If the role or school does not match
    """
    decision = authorize(principal, allowed_roles, *resource_school_ids)
    if decision.allowed:
        return
    if decision.reason is DenyReason.UNAUTHORIZED:
        raise UnauthorizedError()
    raise ForbiddenError()


def ensure_school_access(principal: Principal, *resource_school_ids: str | None) -> None:
    """
    Tenant-ownership check for a principal that already passed the role check.

    Superadmins always pass; school admins must belong to one of the schools.
    """
    ensure_authorized(principal, (principal.role,), *resource_school_ids)
