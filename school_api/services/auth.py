"""Authentication service."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.core.exceptions import UnauthenticatedError, store_errors
from school_api.core.security import create_access_token, verify_password
from school_api.models.user import User

logger = structlog.get_logger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get user by email."""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


def issue_token(user: User) -> str:
    """Sign a long-lived token carrying the user's principal."""
    return create_access_token(user.to_principal().to_claims())


@store_errors("Login failed")
async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """Authenticate user with email and password."""
    user = await get_user_by_email(db, email)

    if not user or not user.is_active or not verify_password(password, user.password_hash):
        logger.info("login_failed", email=email)
        raise UnauthenticatedError("Invalid email or password")

    logger.info("login_succeeded", user_id=str(user.id))
    return user
