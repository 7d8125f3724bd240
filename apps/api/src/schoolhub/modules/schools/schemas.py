"""School schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from schoolhub.modules.users.models import UserRole


class SchoolCreate(BaseModel):
    """Request body for creating a school."""

    name: str = Field(..., min_length=2, max_length=100)
    code: str = Field(
        ...,
        min_length=2,
        max_length=10,
        pattern=r"^[A-Za-z0-9]+$",
        description="Short code prefixing student numbers, e.g. GWH",
    )
    address: str | None = Field(None, max_length=500)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    max_capacity: int = Field(0, ge=0, description="Maximum number of students, 0 for unlimited")

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.upper()


class SchoolUpdate(BaseModel):
    """Request body for updating a school. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=2, max_length=100)
    code: str | None = Field(None, min_length=2, max_length=10, pattern=r"^[A-Za-z0-9]+$")
    address: str | None = Field(None, max_length=500)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    max_capacity: int | None = Field(None, ge=0)

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str | None) -> str | None:
        return value.upper() if value else value


class SchoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    code: str
    address: str | None
    phone: str | None
    email: str | None
    max_capacity: int
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class SchoolListResponse(BaseModel):
    """Paginated list of schools."""

    items: list[SchoolResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)


class SchoolDeleteResponse(BaseModel):
    id: str
    message: str = "School deleted successfully"


class SchoolAdminCreate(BaseModel):
    """Request body for creating a school admin account."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class SchoolAdminResponse(BaseModel):
    """Created school admin. The password hash is never returned."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    school_id: str | None
    is_active: bool
    created_at: datetime
