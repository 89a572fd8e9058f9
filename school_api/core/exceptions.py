"""Service errors and the store error boundary."""

import functools
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from fastapi import status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger(__name__)

R = TypeVar("R")


class ServiceError(Exception):
    """Base error raised by services and gates, rendered into the response envelope.

    NotFound and Conflict are domain outcomes, not faults: the envelope carries
    ok=false with a 200 status. Gate failures carry their own status.
    """

    status_code: int = status.HTTP_200_OK

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    pass


class ConflictError(ServiceError):
    pass


class ValidationFailedError(ServiceError):
    status_code = 422


class InternalError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def store_errors(
    message: str,
    *,
    conflict: str | None = None,
) -> Callable[[Callable[..., Awaitable[R]]], Callable[..., Awaitable[R]]]:
    """Wrap a service function taking the session as its first argument.

    Any failure rolls the session back. Unique/check violations become a
    ConflictError; other database errors are logged and surfaced as a generic
    InternalError(message) without driver details.
    """

    def decorator(func: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(db: AsyncSession, *args, **kwargs) -> R:
            try:
                return await func(db, *args, **kwargs)
            except ServiceError:
                await db.rollback()
                raise
            except IntegrityError as exc:
                await db.rollback()
                logger.warning("integrity_error", operation=func.__name__, error=str(exc.orig))
                raise ConflictError(conflict or message) from exc
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.exception("store_error", operation=func.__name__)
                raise InternalError(message) from exc

        return wrapper

    return decorator
