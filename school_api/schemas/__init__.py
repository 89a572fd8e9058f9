"""Pydantic schemas."""

from school_api.schemas.auth import AuthData, LoginRequest
from school_api.schemas.common import CamelModel, Envelope, Pagination, SchoolSummary
from school_api.schemas.user import ProfileData, UserProfile, UserRegister, UserResponse

__all__ = [
    # Common
    "CamelModel",
    "Envelope",
    "Pagination",
    "SchoolSummary",
    # Auth
    "AuthData",
    "LoginRequest",
    # User
    "UserRegister",
    "UserResponse",
    "UserProfile",
    "ProfileData",
]
