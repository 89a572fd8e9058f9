"""User routes: registration, login and profile."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.core.database import get_db
from school_api.core.deps import AuthenticatedPrincipal
from school_api.core.rate_limit import auth_limit
from school_api.schemas.auth import AuthData, LoginRequest
from school_api.schemas.common import Envelope
from school_api.schemas.user import ProfileData, UserProfile, UserRegister, UserResponse
from school_api.services import auth as auth_service
from school_api.services import user as user_service

router = APIRouter(prefix="/user", tags=["Users"])


@router.post("/register", response_model=Envelope[AuthData])
@auth_limit
async def register(
    request: Request,
    user_data: UserRegister,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Envelope[AuthData]:
    """
    Register a user and issue a token.

    - The first registered user becomes SUPERADMIN
    - Later users are SCHOOL_ADMIN
    """
    user = await user_service.register_user(db, user_data)
    return Envelope[AuthData](
        data=AuthData(
            user=UserResponse.model_validate(user),
            long_token=auth_service.issue_token(user),
        )
    )


@router.post("/login", response_model=Envelope[AuthData])
@auth_limit
async def login(
    request: Request,
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Envelope[AuthData]:
    """Login with email and password and get a token."""
    user = await auth_service.authenticate_user(db, login_data.email, login_data.password)
    return Envelope[AuthData](
        data=AuthData(
            user=UserResponse.model_validate(user),
            long_token=auth_service.issue_token(user),
        )
    )


@router.get("/profile", response_model=Envelope[ProfileData])
async def get_profile(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: AuthenticatedPrincipal,
) -> Envelope[ProfileData]:
    """Get the current user's profile."""
    user = await user_service.get_profile(db, principal)
    return Envelope[ProfileData](data=ProfileData(user=UserProfile.model_validate(user)))
