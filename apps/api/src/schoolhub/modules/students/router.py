"""
Students Router

Endpoints:
- POST /students - Enroll a student
- GET /students?school_id=&classroom_id= - List a school's students
- GET /students/{student_id} - Get a student
- PATCH /students/{student_id} - Update a student
- DELETE /students/{student_id} - Soft-delete a student

Moving a student to another school goes through /transfer-requests.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext, get_services, guard
from schoolhub.core.container import Services
from schoolhub.core.database import get_db
from schoolhub.core.pagination import Pagination, get_pagination
from schoolhub.core.policy import Action
from schoolhub.modules.students import service
from schoolhub.modules.students.schemas import (
    StudentCreate,
    StudentDeleteResponse,
    StudentListResponse,
    StudentResponse,
    StudentUpdate,
)

router = APIRouter()


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll Student",
    responses={
        403: {"description": "School admin of another school"},
        404: {"description": "School or classroom not found"},
        409: {"description": "Email already in use, or school/classroom full"},
    },
)
async def create_student(
    data: StudentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.STUDENTS_CREATE)),
    services: Services = Depends(get_services),
) -> StudentResponse:
    """
    Enroll a student in a school, optionally in one of its classrooms.

    The student number is generated as <SCHOOL CODE>-<YEAR>-<SEQ>.
    """
    student = await service.create_student(db, ctx, data, services.audit)
    return StudentResponse.model_validate(student)


@router.get("", response_model=StudentListResponse, summary="List Students")
async def list_students(
    school_id: UUID = Query(..., description="School whose students to list"),
    classroom_id: UUID | None = Query(None, description="Only students of this classroom"),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.STUDENTS_LIST)),
    pagination: Pagination = Depends(get_pagination),
) -> StudentListResponse:
    students, total = await service.list_students(
        db,
        ctx,
        str(school_id),
        pagination,
        classroom_id=str(classroom_id) if classroom_id else None,
    )

    return StudentListResponse(
        items=[StudentResponse.model_validate(student) for student in students],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    summary="Get Student",
    responses={404: {"description": "Student not found"}},
)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.STUDENTS_GET)),
) -> StudentResponse:
    student = await service.get_student(db, ctx, str(student_id))
    return StudentResponse.model_validate(student)


@router.patch(
    "/{student_id}",
    response_model=StudentResponse,
    summary="Update Student",
    responses={
        404: {"description": "Student or classroom not found"},
        409: {"description": "Email already in use, or classroom full"},
    },
)
async def update_student(
    student_id: UUID,
    data: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.STUDENTS_UPDATE)),
    services: Services = Depends(get_services),
) -> StudentResponse:
    student = await service.update_student(db, ctx, str(student_id), data, services.audit)
    return StudentResponse.model_validate(student)


@router.delete(
    "/{student_id}",
    response_model=StudentDeleteResponse,
    summary="Delete Student",
    responses={404: {"description": "Student not found"}},
)
async def delete_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.STUDENTS_DELETE)),
    services: Services = Depends(get_services),
) -> StudentDeleteResponse:
    await service.delete_student(db, ctx, str(student_id), services.audit)
    return StudentDeleteResponse(id=str(student_id))
