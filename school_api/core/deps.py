"""Dependencies for FastAPI routes: scope resolver and authorization gates."""

import json
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from school_api.core.exceptions import ForbiddenError, UnauthenticatedError
from school_api.core.permissions import Principal
from school_api.core.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)

SCOPE_PARAM = "schoolId"


async def get_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    token: Annotated[str | None, Header()] = None,
) -> Principal:
    """Resolve the request credential into a principal.

    Accepts `Authorization: Bearer <jwt>` or a bare `token` header. Every
    failure past the missing-credential case is reported identically.
    """
    raw_token = credentials.credentials if credentials else token
    if not raw_token:
        raise UnauthenticatedError("Authentication required")

    payload = decode_access_token(raw_token)
    if payload is None:
        raise UnauthenticatedError("Invalid or expired token")

    try:
        return Principal.from_claims(payload)
    except (KeyError, TypeError, ValueError):
        raise UnauthenticatedError("Invalid or expired token")


async def require_authenticated(
    principal: Annotated[Principal, Depends(get_principal)],
) -> Principal:
    """Any authenticated role passes."""
    return principal


async def require_superadmin(
    principal: Annotated[Principal, Depends(get_principal)],
) -> Principal:
    if not principal.is_superadmin:
        raise ForbiddenError("Access denied. Superadmin privileges required.")
    return principal


async def _requested_school_ids(request: Request) -> list[Any]:
    """Collect every non-empty `schoolId` the request names in path, query or JSON body."""
    values: list[Any] = []
    if SCOPE_PARAM in request.path_params:
        values.append(request.path_params[SCOPE_PARAM])
    values.extend(value for value in request.query_params.getlist(SCOPE_PARAM) if value)

    body = await request.body()
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get(SCOPE_PARAM):
            values.append(payload[SCOPE_PARAM])
    return values


def _is_school(value: Any, school_id: UUID) -> bool:
    try:
        return UUID(str(value)) == school_id
    except ValueError:
        return False


async def require_school_scope(
    request: Request,
    principal: Annotated[Principal, Depends(get_principal)],
) -> Principal:
    """Superadmins pass; school admins are confined to their home school.

    Only `schoolId` is checked here. Entity ids (classroomId, studentId) are
    checked for ownership by the services after the entity is loaded.
    """
    if principal.is_superadmin:
        return principal

    if principal.school_id is None:
        raise ForbiddenError("Access denied. No school assigned to your account.")

    for value in await _requested_school_ids(request):
        if not _is_school(value, principal.school_id):
            raise ForbiddenError("Access denied. You can only access your assigned school.")

    return principal


# Principal aliases, one per gate tier
SuperadminPrincipal = Annotated[Principal, Depends(require_superadmin)]
SchoolAdminPrincipal = Annotated[Principal, Depends(require_school_scope)]
AuthenticatedPrincipal = Annotated[Principal, Depends(require_authenticated)]
