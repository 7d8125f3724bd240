"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from schoolhub.modules.users.models import UserRole


class SetupSuperadminRequest(BaseModel):
    """First-run creation of the platform superadmin."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class LongTokenRequest(BaseModel):
    """Body of logout and refresh: the long-lived session token."""

    long_token: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    """User response schema. The password hash is never returned."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    school_id: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AccessTokenResponse(BaseModel):
    """A freshly minted access token."""

    access_token: str
    expires_at: datetime
    token_type: str = "bearer"


class LoginResponse(BaseModel):
    """Login response schema."""

    long_token: str
    long_token_expires_at: datetime
    access_token: str
    access_token_expires_at: datetime
    token_type: str = "bearer"
    user: UserResponse


class LogoutResponse(BaseModel):
    message: str = "Logged out successfully"
