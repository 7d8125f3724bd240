"""Classroom schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ClassroomCreate(BaseModel):
    """Request body for creating a classroom."""

    school_id: UUID = Field(..., description="School the classroom belongs to")
    name: str = Field(..., min_length=2, max_length=100)
    capacity: int = Field(..., ge=1, description="Maximum number of students")
    resources: list[str] = Field(default_factory=list, max_length=50)


class ClassroomUpdate(BaseModel):
    """Request body for updating a classroom. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=2, max_length=100)
    capacity: int | None = Field(None, ge=1)
    resources: list[str] | None = Field(None, max_length=50)


class ClassroomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    name: str
    capacity: int
    resources: list[str]
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class ClassroomListResponse(BaseModel):
    """Paginated list of classrooms."""

    items: list[ClassroomResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)


class ClassroomDeleteResponse(BaseModel):
    id: str
    message: str = "Classroom deleted successfully"
