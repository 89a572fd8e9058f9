"""Authentication schemas."""

from pydantic import EmailStr, Field

from school_api.schemas.common import CamelModel
from school_api.schemas.user import UserResponse


class LoginRequest(CamelModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class AuthData(CamelModel):
    """Issued credential with the authenticated user."""

    user: UserResponse
    long_token: str
    token_type: str = "bearer"
