"""
Classroom Service Layer

Business logic for classrooms. Superadmins manage classrooms of any school;
school admins only those of their own school.

Check order for operations on an existing classroom: fetch (404 for absent
or deleted) -> tenant ownership (403) -> business rules (409).
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext
from schoolhub.core.authorization import ensure_school_access
from schoolhub.core.errors import ConflictError, NotFoundError
from schoolhub.core.pagination import Pagination
from schoolhub.modules.audit import AuditAction, AuditResource, AuditTrail
from schoolhub.modules.classrooms.models import Classroom
from schoolhub.modules.classrooms.repository import ClassroomRepository
from schoolhub.modules.classrooms.schemas import (
    ClassroomCreate,
    ClassroomResponse,
    ClassroomUpdate,
)
from schoolhub.modules.schools.service import get_live_school
from schoolhub.modules.students.repository import StudentRepository

logger = logging.getLogger(__name__)


class ClassroomNotFoundError(NotFoundError):
    """Raised when a classroom is absent or soft-deleted."""

    def __init__(self, classroom_id: str | None = None):
        super().__init__("classroom", classroom_id)


class ClassroomAlreadyExistsError(ConflictError):
    """Raised when a live classroom with the same name exists in the school."""

    def __init__(self, name: str):
        super().__init__(
            error_code="classroom_already_exists",
            message=f"A classroom named '{name}' already exists in this school.",
        )


class ClassroomHasStudentsError(ConflictError):
    """Raised when deleting a classroom that still has live students."""

    def __init__(self):
        super().__init__(
            error_code="classroom_has_students",
            message="Cannot delete a classroom that still has students.",
        )


def _snapshot(classroom: Classroom) -> dict:
    return ClassroomResponse.model_validate(classroom).model_dump(mode="json")


async def get_live_classroom(db: AsyncSession, classroom_id: str) -> Classroom:
    """
    Get a classroom that has not been soft-deleted.

    Raises:
        ClassroomNotFoundError: If the classroom is absent or deleted
    """
    classroom = await ClassroomRepository.get_by_id(db, classroom_id)
    if not classroom:
        raise ClassroomNotFoundError(classroom_id)
    return classroom


async def get_live_classroom_in_school(
    db: AsyncSession,
    classroom_id: str,
    school_id: str,
) -> Classroom:
    """
    Get a live classroom that belongs to the given school.

    A classroom of another school is reported as not found.

    Raises:
        ClassroomNotFoundError: If absent, deleted or in another school
    """
    classroom = await get_live_classroom(db, classroom_id)
    if str(classroom.school_id) != str(school_id):
        raise ClassroomNotFoundError(classroom_id)
    return classroom


async def create_classroom(
    db: AsyncSession,
    ctx: RequestContext,
    data: ClassroomCreate,
    audit: AuditTrail,
) -> Classroom:
    """
    Create a classroom in a school.

    Raises:
        ForbiddenError: If a school admin targets another school
        SchoolNotFoundError: If the school is absent or deleted
        ClassroomAlreadyExistsError: If the name is taken in the school
    """
    principal = ctx.require_principal()
    school_id = str(data.school_id)
    ensure_school_access(principal, school_id)

    school = await get_live_school(db, school_id)

    if await ClassroomRepository.get_by_name(db, school.id, data.name):
        raise ClassroomAlreadyExistsError(data.name)

    try:
        classroom = await ClassroomRepository.create(
            db,
            school_id=school.id,
            name=data.name,
            capacity=data.capacity,
            resources=data.resources,
            created_by=principal.user_id,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ClassroomAlreadyExistsError(data.name) from e

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.CREATE,
        resource=AuditResource.CLASSROOM,
        resource_id=classroom.id,
        after=_snapshot(classroom),
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
    return classroom


async def list_classrooms(
    db: AsyncSession,
    ctx: RequestContext,
    school_id: str,
    pagination: Pagination,
) -> tuple[list[Classroom], int]:
    """
    List live classrooms of a school.

    Raises:
        ForbiddenError: If a school admin targets another school
        SchoolNotFoundError: If the school is absent or deleted
    """
    ensure_school_access(ctx.require_principal(), school_id)
    school = await get_live_school(db, school_id)

    return await ClassroomRepository.list_page(
        db,
        school_id=school.id,
        skip=pagination.skip,
        limit=pagination.limit,
    )


async def get_classroom(db: AsyncSession, ctx: RequestContext, classroom_id: str) -> Classroom:
    classroom = await get_live_classroom(db, classroom_id)
    ensure_school_access(ctx.require_principal(), classroom.school_id)
    return classroom


async def update_classroom(
    db: AsyncSession,
    ctx: RequestContext,
    classroom_id: str,
    data: ClassroomUpdate,
    audit: AuditTrail,
) -> Classroom:
    """
    Update the provided fields of a classroom.

    Raises:
        ClassroomNotFoundError: If the classroom is absent or deleted
        ForbiddenError: If a school admin targets another school's classroom
        ClassroomAlreadyExistsError: If the new name is taken in the school
    """
    principal = ctx.require_principal()
    classroom = await get_live_classroom(db, classroom_id)
    ensure_school_access(principal, classroom.school_id)

    fields = {
        key: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if value is not None
    }

    new_name = fields.get("name")
    if new_name and new_name != classroom.name:
        if await ClassroomRepository.get_by_name(db, classroom.school_id, new_name):
            raise ClassroomAlreadyExistsError(new_name)

    before = _snapshot(classroom)
    name = new_name or classroom.name

    try:
        classroom = await ClassroomRepository.update(db, classroom, **fields)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ClassroomAlreadyExistsError(name) from e

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.UPDATE,
        resource=AuditResource.CLASSROOM,
        resource_id=classroom.id,
        before=before,
        after=_snapshot(classroom),
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
    return classroom


async def delete_classroom(
    db: AsyncSession,
    ctx: RequestContext,
    classroom_id: str,
    audit: AuditTrail,
) -> None:
    """
    Soft-delete a classroom.

    Raises:
        ClassroomNotFoundError: If the classroom is absent or already deleted
        ForbiddenError: If a school admin targets another school's classroom
        ClassroomHasStudentsError: If live students are still assigned to it
    """
    principal = ctx.require_principal()
    classroom = await get_live_classroom(db, classroom_id)
    ensure_school_access(principal, classroom.school_id)

    if await StudentRepository.count_in_classroom(db, classroom.id) > 0:
        raise ClassroomHasStudentsError()

    before = _snapshot(classroom)
    await ClassroomRepository.soft_delete(db, classroom)
    await db.commit()

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.DELETE,
        resource=AuditResource.CLASSROOM,
        resource_id=classroom.id,
        before=before,
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
