"""User service."""

from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_api.core.exceptions import ConflictError, ForbiddenError, NotFoundError, store_errors
from school_api.core.permissions import Principal, Role
from school_api.core.security import get_password_hash
from school_api.models.user import User
from school_api.schemas.user import UserRegister
from school_api.services.auth import get_user_by_email
from school_api.services.school import get_school_by_id

logger = structlog.get_logger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    """Get user by ID with its school loaded."""
    result = await db.execute(
        select(User).options(selectinload(User.school)).where(User.id == user_id)
    )
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def count_users(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(User))
    return result.scalar() or 0


@store_errors("Failed to create user", conflict="Email or username already registered")
async def register_user(db: AsyncSession, user_data: UserRegister) -> User:
    """Register a user.

    The very first user bootstraps the system as superadmin. Everyone after
    that is a school admin.
    """
    if await get_user_by_email(db, user_data.email):
        raise ConflictError("Email already registered")
    if await get_user_by_username(db, user_data.username):
        raise ConflictError("Username already taken")

    if await count_users(db) == 0:
        role, school_id = Role.SUPERADMIN, None
    else:
        if user_data.role == Role.SUPERADMIN:
            raise ForbiddenError("Only the first registered user can be a superadmin")
        role, school_id = Role.SCHOOL_ADMIN, user_data.school_id

    if school_id and not await get_school_by_id(db, school_id):
        raise NotFoundError("School not found")

    user = User(
        username=user_data.username,
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        role=role,
        school_id=school_id,
        is_active=True,
    )

    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user_registered", user_id=str(user.id), role=role.value)
    return user


@store_errors("Failed to fetch profile")
async def get_profile(db: AsyncSession, principal: Principal) -> User:
    user = await get_user_by_id(db, principal.user_id)
    if not user:
        raise NotFoundError("User not found")
    return user
