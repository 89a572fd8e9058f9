"""Shared schema building blocks."""

from typing import Annotated, Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, StringConstraints
from pydantic.alias_generators import to_camel

T = TypeVar("T")

TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]


def _blank_to_none(value: Any) -> Any:
    return None if value == "" else value


# An empty string counts as not given
OptionalUUID = Annotated[UUID | None, BeforeValidator(_blank_to_none)]


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys; snake_case input is accepted too."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class Envelope(BaseModel, Generic[T]):
    """Response envelope shared by every endpoint."""

    ok: bool = True
    errors: Any = None
    data: T | None = None


class Pagination(CamelModel):
    current: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(current=page, limit=limit, total=total, pages=(total + limit - 1) // limit)


class SchoolSummary(CamelModel):
    """Compact school reference embedded in other responses."""

    id: UUID
    name: str
