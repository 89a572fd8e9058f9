"""User schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from school_api.core.permissions import Role
from school_api.schemas.common import CamelModel, OptionalUUID, SchoolSummary


class UserRegister(CamelModel):
    """Schema for registering a new user."""

    username: str = Field(..., min_length=3, max_length=20, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    role: Role | None = None
    school_id: OptionalUUID = None


class UserResponse(CamelModel):
    """User response schema."""

    id: UUID
    username: str
    email: str
    role: Role
    school_id: UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserProfile(UserResponse):
    school: SchoolSummary | None = None


class ProfileData(CamelModel):
    user: UserProfile
