"""Request rate limiting with slowapi.

Every API route gets the default limit per client address through
`SlowAPIMiddleware`. Login and register share a stricter limit:

    @auth_limit
    async def login(request: Request, ...):
        ...
"""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from school_api.core.config import settings

logger = structlog.get_logger(__name__)

TOO_MANY_REQUESTS = "Too many requests, please try again later."
TOO_MANY_AUTH_ATTEMPTS = "Too many authentication attempts, please try again later."

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)

# One counter for login and register together
auth_limit = limiter.shared_limit(
    settings.RATE_LIMIT_AUTH,
    scope="auth",
    error_message=TOO_MANY_AUTH_ATTEMPTS,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer 429 in the response envelope. Synchronous: SlowAPIMiddleware calls it directly."""
    logger.warning("rate_limit_exceeded", path=request.url.path, limit=str(exc.limit.limit))
    errors = exc.detail if exc.limit.error_message else TOO_MANY_REQUESTS
    return JSONResponse(
        status_code=429,
        content={"ok": False, "errors": errors, "data": {}},
    )
