"""
Schools Router

Superadmin endpoints for managing schools and their administrators.

Endpoints:
- POST /schools - Create a school
- GET /schools - List schools
- GET /schools/{school_id} - Get a school
- PATCH /schools/{school_id} - Update a school
- DELETE /schools/{school_id} - Soft-delete a school
- POST /schools/{school_id}/admins - Create a school admin account
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext, get_services, guard
from schoolhub.core.container import Services
from schoolhub.core.database import get_db
from schoolhub.core.pagination import Pagination, get_pagination
from schoolhub.core.policy import Action
from schoolhub.modules.schools import service
from schoolhub.modules.schools.schemas import (
    SchoolAdminCreate,
    SchoolAdminResponse,
    SchoolCreate,
    SchoolDeleteResponse,
    SchoolListResponse,
    SchoolResponse,
    SchoolUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=SchoolResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create School",
    responses={409: {"description": "School name or code already in use"}},
)
async def create_school(
    data: SchoolCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.SCHOOLS_CREATE)),
    services: Services = Depends(get_services),
) -> SchoolResponse:
    """The code is stored uppercased and prefixes the school's student numbers."""
    school = await service.create_school(db, ctx, data, services.audit)
    return SchoolResponse.model_validate(school)


@router.get("", response_model=SchoolListResponse, summary="List Schools")
async def list_schools(
    db: AsyncSession = Depends(get_db),
    _ctx: RequestContext = Depends(guard(Action.SCHOOLS_LIST)),
    pagination: Pagination = Depends(get_pagination),
) -> SchoolListResponse:
    schools, total = await service.list_schools(db, pagination)

    return SchoolListResponse(
        items=[SchoolResponse.model_validate(school) for school in schools],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get(
    "/{school_id}",
    response_model=SchoolResponse,
    summary="Get School",
    responses={404: {"description": "School not found"}},
)
async def get_school(
    school_id: UUID,
    db: AsyncSession = Depends(get_db),
    _ctx: RequestContext = Depends(guard(Action.SCHOOLS_GET)),
) -> SchoolResponse:
    school = await service.get_school(db, str(school_id))
    return SchoolResponse.model_validate(school)


@router.patch(
    "/{school_id}",
    response_model=SchoolResponse,
    summary="Update School",
    responses={
        404: {"description": "School not found"},
        409: {"description": "School name or code already in use"},
    },
)
async def update_school(
    school_id: UUID,
    data: SchoolUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.SCHOOLS_UPDATE)),
    services: Services = Depends(get_services),
) -> SchoolResponse:
    school = await service.update_school(db, ctx, str(school_id), data, services.audit)
    return SchoolResponse.model_validate(school)


@router.delete(
    "/{school_id}",
    response_model=SchoolDeleteResponse,
    summary="Delete School",
    responses={
        404: {"description": "School not found"},
        409: {"description": "School still has students"},
    },
)
async def delete_school(
    school_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.SCHOOLS_DELETE)),
    services: Services = Depends(get_services),
) -> SchoolDeleteResponse:
    """
    Soft-delete a school.

    A school with live students cannot be deleted; transfer or delete
    them first.
    """
    await service.delete_school(db, ctx, str(school_id), services.audit)
    return SchoolDeleteResponse(id=str(school_id))


@router.post(
    "/{school_id}/admins",
    response_model=SchoolAdminResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create School Admin",
    responses={
        404: {"description": "School not found"},
        409: {"description": "Email already in use"},
    },
)
async def create_school_admin(
    school_id: UUID,
    data: SchoolAdminCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.SCHOOLS_CREATE_ADMIN)),
    services: Services = Depends(get_services),
) -> SchoolAdminResponse:
    user = await service.create_school_admin(db, ctx, str(school_id), data, services.audit)
    return SchoolAdminResponse.model_validate(user)
