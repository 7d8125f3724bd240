"""Student schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class StudentCreate(BaseModel):
    """Request body for enrolling a student."""

    school_id: UUID
    classroom_id: UUID | None = None
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr


class StudentUpdate(BaseModel):
    """Request body for updating a student. Omitted fields are left unchanged."""

    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    email: EmailStr | None = None
    classroom_id: UUID | None = None


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_number: str
    first_name: str
    last_name: str
    email: str
    school_id: str
    classroom_id: str | None
    created_at: datetime
    updated_at: datetime


class StudentListResponse(BaseModel):
    """Paginated list of students."""

    items: list[StudentResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)


class StudentDeleteResponse(BaseModel):
    id: str
    message: str = "Student deleted successfully"
