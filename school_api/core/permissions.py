"""User roles and the request principal."""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from school_api.core.exceptions import ForbiddenError


class Role(str, Enum):
    """User roles in the system."""

    SUPERADMIN = "superadmin"  # Platform admin, manages schools
    SCHOOL_ADMIN = "school_admin"  # Manages classrooms and students of one school


@dataclass(frozen=True)
class Principal:
    """Identity derived from a request credential."""

    role: Role
    user_id: UUID
    school_id: UUID | None = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        """Build a principal from token claims.

        Raises KeyError or ValueError when the claims are incomplete or malformed.
        """
        school_id = claims.get("school_id")
        return cls(
            role=Role(claims["role"]),
            user_id=UUID(claims["sub"]),
            school_id=UUID(school_id) if school_id else None,
        )

    def to_claims(self) -> dict[str, Any]:
        return {
            "sub": str(self.user_id),
            "role": self.role.value,
            "school_id": str(self.school_id) if self.school_id else None,
        }

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    def can_access_school(self, school_id: UUID) -> bool:
        """Superadmins reach every school; school admins only their own."""
        if self.is_superadmin:
            return True
        return self.school_id is not None and self.school_id == school_id

    def target_school(self, requested: UUID | None) -> UUID | None:
        """School a create operation writes into.

        School admins always write into their home school; the scope gate has
        already rejected any other school they named.
        """
        if self.is_superadmin:
            return requested
        return self.school_id


def ensure_school_access(principal: Principal, school_id: UUID, entity: str) -> None:
    """Reject access to an entity owned by another school."""
    if not principal.can_access_school(school_id):
        raise ForbiddenError(f"Access denied. This {entity} belongs to a different school.")
