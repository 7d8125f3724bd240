"""
School Service Layer

Business logic for school (tenant) management. Every operation here is
restricted to superadmins by the policy table; no tenant check applies.

Operations:
- Create, list, get and update schools
- Soft-delete a school once it has no live students
- Create a school admin account bound to a school
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext
from schoolhub.core.errors import ConflictError, NotFoundError
from schoolhub.core.pagination import Pagination
from schoolhub.core.security import hash_password
from schoolhub.modules.audit import AuditAction, AuditResource, AuditTrail
from schoolhub.modules.schools.models import School
from schoolhub.modules.schools.repository import SchoolRepository
from schoolhub.modules.schools.schemas import (
    SchoolAdminCreate,
    SchoolCreate,
    SchoolResponse,
    SchoolUpdate,
)
from schoolhub.modules.students.repository import StudentRepository
from schoolhub.modules.users.models import User, UserRole
from schoolhub.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class SchoolNotFoundError(NotFoundError):
    """Raised when a school is absent or soft-deleted."""

    def __init__(self, school_id: str | None = None):
        super().__init__("school", school_id)


class SchoolAlreadyExistsError(ConflictError):
    """Raised when the school name or code is taken."""

    def __init__(self):
        super().__init__(
            error_code="school_already_exists",
            message="A school with this name or code already exists.",
        )


class SchoolHasStudentsError(ConflictError):
    """Raised when deleting a school that still has live students."""

    def __init__(self):
        super().__init__(
            error_code="school_has_students",
            message="Cannot delete a school that still has students.",
        )


class UserAlreadyExistsError(ConflictError):
    """Raised when an account with the email already exists."""

    def __init__(self):
        super().__init__(
            error_code="user_already_exists",
            message="A user with this email already exists.",
        )


def _snapshot(school: School) -> dict:
    return SchoolResponse.model_validate(school).model_dump(mode="json")


async def get_live_school(db: AsyncSession, school_id: str) -> School:
    """
    Get a school that has not been soft-deleted.

    Raises:
        SchoolNotFoundError: If the school is absent or deleted
    """
    school = await SchoolRepository.get_by_id(db, school_id)
    if not school:
        raise SchoolNotFoundError(school_id)
    return school


async def create_school(
    db: AsyncSession,
    ctx: RequestContext,
    data: SchoolCreate,
    audit: AuditTrail,
) -> School:
    """
    Create a school.

    Raises:
        SchoolAlreadyExistsError: If the name or code is taken
    """
    principal = ctx.require_principal()

    try:
        school = await SchoolRepository.create(
            db,
            name=data.name,
            code=data.code,
            created_by=principal.user_id,
            address=data.address,
            phone=data.phone,
            email=data.email,
            max_capacity=data.max_capacity,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Duplicate school name or code: {data.name} / {data.code}")
        raise SchoolAlreadyExistsError() from e

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.CREATE,
        resource=AuditResource.SCHOOL,
        resource_id=school.id,
        after=_snapshot(school),
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
    return school


async def list_schools(db: AsyncSession, pagination: Pagination) -> tuple[list[School], int]:
    """List live schools."""
    return await SchoolRepository.list_page(db, skip=pagination.skip, limit=pagination.limit)


async def get_school(db: AsyncSession, school_id: str) -> School:
    return await get_live_school(db, school_id)


async def update_school(
    db: AsyncSession,
    ctx: RequestContext,
    school_id: str,
    data: SchoolUpdate,
    audit: AuditTrail,
) -> School:
    """
    Update the provided fields of a school.

    Raises:
        SchoolNotFoundError: If the school is absent or deleted
        SchoolAlreadyExistsError: If the new name or code is taken
    """
    principal = ctx.require_principal()
    school = await get_live_school(db, school_id)
    before = _snapshot(school)

    fields = data.model_dump(exclude_unset=True)
    # name, code and max_capacity are not nullable
    for key in ("name", "code", "max_capacity"):
        if key in fields and fields[key] is None:
            del fields[key]

    try:
        school = await SchoolRepository.update(db, school, **fields)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise SchoolAlreadyExistsError() from e

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.UPDATE,
        resource=AuditResource.SCHOOL,
        resource_id=school.id,
        before=before,
        after=_snapshot(school),
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
    return school


async def delete_school(
    db: AsyncSession,
    ctx: RequestContext,
    school_id: str,
    audit: AuditTrail,
) -> None:
    """
    Soft-delete a school.

    Raises:
        SchoolNotFoundError: If the school is absent or already deleted
        SchoolHasStudentsError: If live students remain
    """
    principal = ctx.require_principal()
    school = await get_live_school(db, school_id)

    if await StudentRepository.count_in_school(db, school.id) > 0:
        logger.warning(f"Refusing to delete school {school.id}: students remain")
        raise SchoolHasStudentsError()

    before = _snapshot(school)
    await SchoolRepository.soft_delete(db, school)
    await db.commit()

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.DELETE,
        resource=AuditResource.SCHOOL,
        resource_id=school.id,
        before=before,
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )


async def create_school_admin(
    db: AsyncSession,
    ctx: RequestContext,
    school_id: str,
    data: SchoolAdminCreate,
    audit: AuditTrail,
) -> User:
    """
    Create a school admin account for a school.

    Raises:
        SchoolNotFoundError: If the school is absent or deleted
        UserAlreadyExistsError: If the email is taken
    """
    principal = ctx.require_principal()
    school = await get_live_school(db, school_id)

    if await UserRepository.get_by_email(db, data.email):
        raise UserAlreadyExistsError()

    try:
        user = await UserRepository.create(
            db,
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            role=UserRole.SCHOOL_ADMIN,
            school_id=school.id,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise UserAlreadyExistsError() from e

    logger.info(f"Created school admin {user.id} for school {school.id}")

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.CREATE,
        resource=AuditResource.USER,
        resource_id=user.id,
        after={"email": user.email, "role": user.role.value, "school_id": user.school_id},
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
    return user
