"""Transfer request schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from schoolhub.modules.transfer_requests.models import TransferStatus


class TransferRequestCreate(BaseModel):
    """Request body for proposing a transfer."""

    student_id: UUID
    to_school_id: UUID
    to_classroom_id: UUID | None = None


class TransferSnapshot(BaseModel):
    """Student data as it was when the transfer was proposed."""

    first_name: str
    last_name: str
    email: str
    student_number: str
    classroom_name: str | None = None


class TransferRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    from_school_id: str
    to_school_id: str
    to_classroom_id: str | None
    requested_by: str | None
    status: TransferStatus
    responded_by: str | None
    responded_at: datetime | None
    snapshot: TransferSnapshot
    created_at: datetime
    updated_at: datetime


class TransferRequestListResponse(BaseModel):
    """Paginated list of transfer requests."""

    items: list[TransferRequestResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
