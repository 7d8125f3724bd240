"""
Transfer Requests Router

Endpoints:
- POST /transfer-requests - Propose moving a student to another school
- GET /transfer-requests - List requests visible to the caller
- GET /transfer-requests/{transfer_id} - Get a request
- POST /transfer-requests/{transfer_id}/approve - Approve (destination side)
- POST /transfer-requests/{transfer_id}/reject - Reject (destination side)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext, get_services, guard
from schoolhub.core.container import Services
from schoolhub.core.database import get_db
from schoolhub.core.pagination import Pagination, get_pagination
from schoolhub.core.policy import Action
from schoolhub.modules.transfer_requests.models import TransferStatus
from schoolhub.modules.transfer_requests.schemas import (
    TransferRequestCreate,
    TransferRequestListResponse,
    TransferRequestResponse,
)
from schoolhub.modules.transfer_requests.service import TransferService

router = APIRouter()


def get_transfer_service(services: Services = Depends(get_services)) -> TransferService:
    return TransferService(services.audit)


@router.post(
    "",
    response_model=TransferRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Propose Transfer",
    responses={
        403: {"description": "Student belongs to another school"},
        404: {"description": "Student, school or classroom not found"},
        409: {"description": "A transfer is already pending for this student"},
    },
)
async def propose_transfer(
    data: TransferRequestCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.TRANSFER_REQUESTS_CREATE)),
    transfers: TransferService = Depends(get_transfer_service),
) -> TransferRequestResponse:
    transfer = await transfers.propose(db, ctx, data)
    return TransferRequestResponse.model_validate(transfer)


@router.get("", response_model=TransferRequestListResponse, summary="List Transfers")
async def list_transfers(
    status_filter: TransferStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.TRANSFER_REQUESTS_LIST)),
    pagination: Pagination = Depends(get_pagination),
    transfers: TransferService = Depends(get_transfer_service),
) -> TransferRequestListResponse:
    """School admins see requests where their school is the source or the destination."""
    items, total = await transfers.list(db, ctx, pagination, status=status_filter)

    return TransferRequestListResponse(
        items=[TransferRequestResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get(
    "/{transfer_id}",
    response_model=TransferRequestResponse,
    summary="Get Transfer",
    responses={404: {"description": "Transfer request not found"}},
)
async def get_transfer(
    transfer_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.TRANSFER_REQUESTS_GET)),
    transfers: TransferService = Depends(get_transfer_service),
) -> TransferRequestResponse:
    transfer = await transfers.get(db, ctx, str(transfer_id))
    return TransferRequestResponse.model_validate(transfer)


@router.post(
    "/{transfer_id}/approve",
    response_model=TransferRequestResponse,
    summary="Approve Transfer",
    responses={
        403: {"description": "Caller is not on the destination side"},
        404: {"description": "Transfer request, student or classroom not found"},
        409: {"description": "Transfer request is no longer pending"},
    },
)
async def approve_transfer(
    transfer_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.TRANSFER_REQUESTS_APPROVE)),
    transfers: TransferService = Depends(get_transfer_service),
) -> TransferRequestResponse:
    """
    Approve a pending transfer.

    The student moves to the destination school (and classroom, if one was
    named) in the same transaction as the status change.
    """
    transfer = await transfers.approve(db, ctx, str(transfer_id))
    return TransferRequestResponse.model_validate(transfer)


@router.post(
    "/{transfer_id}/reject",
    response_model=TransferRequestResponse,
    summary="Reject Transfer",
    responses={
        403: {"description": "Caller is not on the destination side"},
        404: {"description": "Transfer request not found"},
        409: {"description": "Transfer request is no longer pending"},
    },
)
async def reject_transfer(
    transfer_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(guard(Action.TRANSFER_REQUESTS_REJECT)),
    transfers: TransferService = Depends(get_transfer_service),
) -> TransferRequestResponse:
    transfer = await transfers.reject(db, ctx, str(transfer_id))
    return TransferRequestResponse.model_validate(transfer)
