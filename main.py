"""School Management API - FastAPI Application."""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_api.api.router import api_router
from school_api.core.config import settings
from school_api.core.database import engine, utcnow
from school_api.core.exceptions import ServiceError
from school_api.core.logging import setup_logging
from school_api.core.rate_limit import limiter, rate_limit_exceeded_handler

setup_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("startup", app=settings.APP_NAME, environment=settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS: allow frontend to call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting: default limit on every route, stricter on login and register
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; img-src 'self' data: https:"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


def envelope_response(status_code: int, errors) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "errors": errors, "data": {}})


# ============== Exception handlers ==============


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return envelope_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query" location prefix
        field = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
        errors.append(f"{field}: {error['msg']}")
    return envelope_response(422, errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return envelope_response(exc.status_code, exc.detail)


if not settings.is_production:

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


# Include API routes
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
@limiter.exempt
async def health_check():
    """Health check endpoint."""
    return {
        "ok": True,
        "message": "School Management API is running",
        "timestamp": utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
    }


@app.exception_handler(status.HTTP_500_INTERNAL_SERVER_ERROR)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
