"""
Classrooms Router

Endpoints:
- POST /classrooms - Create a classroom
- GET /classrooms?school_id= - List a school's classrooms
- GET /classrooms/{classroom_id} - Get a classroom
- PATCH /classrooms/{classroom_id} - Update a classroom
- DELETE /classrooms/{classroom_id} - Soft-delete a classroom

School admins are limited to their own school.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext, get_services, guard
from schoolhub.core.container import Services
from schoolhub.core.database import get_db
from schoolhub.core.pagination import Pagination, get_pagination
from schoolhub.core.policy import Action
from schoolhub.modules.classrooms import service
from schoolhub.modules.classrooms.schemas import (
    ClassroomCreate,
    ClassroomDeleteResponse,
    ClassroomListResponse,
    ClassroomResponse,
    ClassroomUpdate,
)

router = APIRouter()


@router.post(
    "",
    response_model=ClassroomResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Classroom",
    responses={
        403: {"description": "School admin of another school"},
        404: {"description": "School not found"},
        409: {"description": "Classroom name already used in this school"},
    },
)
async def create_classroom(
    data: ClassroomCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.CLASSROOMS_CREATE)),
    services: Services = Depends(get_services),
) -> ClassroomResponse:
    classroom = await service.create_classroom(db, ctx, data, services.audit)
    return ClassroomResponse.model_validate(classroom)


@router.get("", response_model=ClassroomListResponse, summary="List Classrooms")
async def list_classrooms(
    school_id: UUID = Query(..., description="School whose classrooms to list"),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.CLASSROOMS_LIST)),
    pagination: Pagination = Depends(get_pagination),
) -> ClassroomListResponse:
    classrooms, total = await service.list_classrooms(db, ctx, str(school_id), pagination)

    return ClassroomListResponse(
        items=[ClassroomResponse.model_validate(classroom) for classroom in classrooms],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get(
    "/{classroom_id}",
    response_model=ClassroomResponse,
    summary="Get Classroom",
    responses={404: {"description": "Classroom not found"}},
)
async def get_classroom(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.CLASSROOMS_GET)),
) -> ClassroomResponse:
    classroom = await service.get_classroom(db, ctx, str(classroom_id))
    return ClassroomResponse.model_validate(classroom)


@router.patch(
    "/{classroom_id}",
    response_model=ClassroomResponse,
    summary="Update Classroom",
    responses={
        404: {"description": "Classroom not found"},
        409: {"description": "Classroom name already used in this school"},
    },
)
async def update_classroom(
    classroom_id: UUID,
    data: ClassroomUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.CLASSROOMS_UPDATE)),
    services: Services = Depends(get_services),
) -> ClassroomResponse:
    classroom = await service.update_classroom(
        db, ctx, str(classroom_id), data, services.audit
    )
    return ClassroomResponse.model_validate(classroom)


@router.delete(
    "/{classroom_id}",
    response_model=ClassroomDeleteResponse,
    summary="Delete Classroom",
    responses={
        404: {"description": "Classroom not found"},
        409: {"description": "Classroom still has students"},
    },
)
async def delete_classroom(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.CLASSROOMS_DELETE)),
    services: Services = Depends(get_services),
) -> ClassroomDeleteResponse:
    await service.delete_classroom(db, ctx, str(classroom_id), services.audit)
    return ClassroomDeleteResponse(id=str(classroom_id))
