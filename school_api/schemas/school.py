"""School schemas."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import EmailStr, Field, StringConstraints

from school_api.models.school import SchoolType
from school_api.schemas.common import CamelModel, Pagination
from school_api.schemas.validators import PhoneNumber, Website

SchoolName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=200)]


class Address(CamelModel):
    """Postal address; every sub-field is optional so updates can merge."""

    street: str | None = Field(None, max_length=200)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)


class SchoolCreate(CamelModel):
    """Schema for creating a new school."""

    name: SchoolName
    address: Address | None = None
    phone: PhoneNumber | None = None
    email: EmailStr | None = None
    website: Website | None = None
    established_year: int | None = Field(None, ge=1000, le=9999)
    school_type: SchoolType = SchoolType.K12
    max_students: int | None = Field(None, ge=1)


class SchoolUpdate(CamelModel):
    """Schema for updating a school. Only supplied fields change."""

    school_id: UUID
    name: SchoolName | None = None
    address: Address | None = None
    phone: PhoneNumber | None = None
    email: EmailStr | None = None
    website: Website | None = None
    established_year: int | None = Field(None, ge=1000, le=9999)
    school_type: SchoolType | None = None
    max_students: int | None = Field(None, ge=1)
    is_active: bool | None = None


class SchoolResponse(CamelModel):
    """School response schema."""

    id: UUID
    name: str
    address: Address
    phone: str | None
    email: str | None
    website: str | None
    established_year: int | None
    school_type: SchoolType
    max_students: int
    current_student_count: int
    is_active: bool
    created_by_id: UUID | None
    created_at: datetime
    updated_at: datetime


class SchoolData(CamelModel):
    school: SchoolResponse


class SchoolListData(CamelModel):
    """Paginated list of schools."""

    schools: list[SchoolResponse]
    pagination: Pagination


class SchoolDeleted(CamelModel):
    message: str
