"""
Student Service Layer

Business logic for student records.

Enrollment:
1. Tenant check against the target school (school admins: own school only)
2. School must be live; classroom, if given, must be live and in that school
3. Email must be unused
4. School (max_capacity, 0 = unlimited) and classroom capacity must not be full
5. A student number is drawn from the school's counter for the current year
   and formatted as {SCHOOL_CODE}-{YEAR}-{SEQ}, e.g. GWH-2026-0007

Capacity is checked by count before insert; two concurrent enrollments may
both pass the check for the last seat.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext
from schoolhub.core.authorization import ensure_school_access
from schoolhub.core.errors import ConflictError, NotFoundError
from schoolhub.core.pagination import Pagination
from schoolhub.modules.audit import AuditAction, AuditResource, AuditTrail
from schoolhub.modules.classrooms.models import Classroom
from schoolhub.modules.classrooms.service import get_live_classroom_in_school
from schoolhub.modules.counters import format_identifier, next_sequence
from schoolhub.modules.schools.models import School
from schoolhub.modules.schools.service import get_live_school
from schoolhub.modules.students.models import Student
from schoolhub.modules.students.repository import StudentRepository
from schoolhub.modules.students.schemas import StudentCreate, StudentResponse, StudentUpdate

logger = logging.getLogger(__name__)

STUDENT_SEQUENCE = "student"


class StudentNotFoundError(NotFoundError):
    """Raised when a student is absent or soft-deleted."""

    def __init__(self, student_id: str | None = None):
        super().__init__("student", student_id)


class StudentAlreadyExistsError(ConflictError):
    """Raised when a student with the email already exists."""

    def __init__(self):
        super().__init__(
            error_code="student_already_exists",
            message="A student with this email already exists.",
        )


class SchoolAtCapacityError(ConflictError):
    def __init__(self):
        super().__init__(
            error_code="school_at_capacity",
            message="The school has reached its maximum capacity.",
        )


class ClassroomAtCapacityError(ConflictError):
    def __init__(self):
        super().__init__(
            error_code="classroom_at_capacity",
            message="The classroom has reached its capacity.",
        )


def _current_year() -> int:
    return datetime.now(UTC).year


def _snapshot(student: Student) -> dict:
    return StudentResponse.model_validate(student).model_dump(mode="json")


async def get_live_student(db: AsyncSession, student_id: str) -> Student:
    """
    Get a student that has not been soft-deleted.

    Raises:
        StudentNotFoundError: If the student is absent or deleted
    """
    student = await StudentRepository.get_by_id(db, student_id)
    if not student:
        raise StudentNotFoundError(student_id)
    return student


async def _ensure_classroom_has_room(db: AsyncSession, classroom: Classroom) -> None:
    if await StudentRepository.count_in_classroom(db, classroom.id) >= classroom.capacity:
        logger.warning(f"Classroom {classroom.id} is at capacity ({classroom.capacity})")
        raise ClassroomAtCapacityError()


async def _ensure_school_has_room(db: AsyncSession, school: School) -> None:
    if not school.max_capacity:
        return
    if await StudentRepository.count_in_school(db, school.id) >= school.max_capacity:
        logger.warning(f"School {school.id} is at capacity ({school.max_capacity})")
        raise SchoolAtCapacityError()


async def next_student_number(db: AsyncSession, school_code: str) -> str:
    """Draw the next student number for a school in the current year."""
    year = _current_year()
    seq = await next_sequence(db, STUDENT_SEQUENCE, school_code, year)
    return format_identifier(school_code, year, seq)


async def create_student(
    db: AsyncSession,
    ctx: RequestContext,
    data: StudentCreate,
    audit: AuditTrail,
) -> Student:
    """
    Enroll a student.

    Raises:
        ForbiddenError: If a school admin targets another school
        SchoolNotFoundError: If the school is absent or deleted
        ClassroomNotFoundError: If the classroom is absent, deleted or elsewhere
        StudentAlreadyExistsError: If the email is taken
        SchoolAtCapacityError: If the school is full
        ClassroomAtCapacityError: If the classroom is full
    """
    principal = ctx.require_principal()
    school_id = str(data.school_id)
    ensure_school_access(principal, school_id)

    school = await get_live_school(db, school_id)

    classroom = None
    if data.classroom_id:
        classroom = await get_live_classroom_in_school(db, str(data.classroom_id), school.id)

    if await StudentRepository.get_by_email(db, data.email):
        raise StudentAlreadyExistsError()

    await _ensure_school_has_room(db, school)
    if classroom:
        await _ensure_classroom_has_room(db, classroom)

    try:
        student_number = await next_student_number(db, school.code)
        student = await StudentRepository.create(
            db,
            student_number=student_number,
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            school_id=school.id,
            classroom_id=classroom.id if classroom else None,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise StudentAlreadyExistsError() from e

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.CREATE,
        resource=AuditResource.STUDENT,
        resource_id=student.id,
        after=_snapshot(student),
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
    return student


async def list_students(
    db: AsyncSession,
    ctx: RequestContext,
    school_id: str,
    pagination: Pagination,
    classroom_id: str | None = None,
) -> tuple[list[Student], int]:
    """
    List live students of a school.

    Raises:
        ForbiddenError: If a school admin targets another school
        SchoolNotFoundError: If the school is absent or deleted
    """
    ensure_school_access(ctx.require_principal(), school_id)
    school = await get_live_school(db, school_id)

    return await StudentRepository.list_page(
        db,
        school_id=school.id,
        classroom_id=classroom_id,
        skip=pagination.skip,
        limit=pagination.limit,
    )


async def get_student(db: AsyncSession, ctx: RequestContext, student_id: str) -> Student:
    student = await get_live_student(db, student_id)
    ensure_school_access(ctx.require_principal(), student.school_id)
    return student


async def update_student(
    db: AsyncSession,
    ctx: RequestContext,
    student_id: str,
    data: StudentUpdate,
    audit: AuditTrail,
) -> Student:
    """
    Update the provided fields of a student.

    Moving a student between schools goes through a transfer request; here
    the classroom can only change within the student's current school.

    Raises:
        StudentNotFoundError: If the student is absent or deleted
        ForbiddenError: If a school admin targets another school's student
        ClassroomNotFoundError: If the new classroom is absent or elsewhere
        ClassroomAtCapacityError: If the new classroom is full
        StudentAlreadyExistsError: If the new email is taken
    """
    principal = ctx.require_principal()
    student = await get_live_student(db, student_id)
    ensure_school_access(principal, student.school_id)

    fields = data.model_dump(mode="json", exclude_unset=True)
    # Only classroom_id may be cleared
    for key in ("first_name", "last_name", "email"):
        if key in fields and fields[key] is None:
            del fields[key]

    new_classroom_id = fields.get("classroom_id")
    if new_classroom_id and new_classroom_id != student.classroom_id:
        classroom = await get_live_classroom_in_school(db, new_classroom_id, student.school_id)
        await _ensure_classroom_has_room(db, classroom)

    new_email = fields.get("email")
    if new_email and new_email.lower() != student.email:
        if await StudentRepository.get_by_email(db, new_email):
            raise StudentAlreadyExistsError()

    before = _snapshot(student)

    try:
        student = await StudentRepository.update(db, student, **fields)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise StudentAlreadyExistsError() from e

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.UPDATE,
        resource=AuditResource.STUDENT,
        resource_id=student.id,
        before=before,
        after=_snapshot(student),
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
    return student


async def delete_student(
    db: AsyncSession,
    ctx: RequestContext,
    student_id: str,
    audit: AuditTrail,
) -> None:
    """
    Soft-delete a student.

    Raises:
        StudentNotFoundError: If the student is absent or already deleted
        ForbiddenError: If a school admin targets another school's student
    """
    principal = ctx.require_principal()
    student = await get_live_student(db, student_id)
    ensure_school_access(principal, student.school_id)

    before = _snapshot(student)
    await StudentRepository.soft_delete(db, student)
    await db.commit()

    await audit.record(
        actor_id=principal.user_id,
        action=AuditAction.DELETE,
        resource=AuditResource.STUDENT,
        resource_id=student.id,
        before=before,
        ip=ctx.client_ip,
        user_agent=ctx.user_agent,
    )
