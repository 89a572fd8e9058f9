"""Student schemas."""

from datetime import date, datetime
from typing import Annotated
from uuid import UUID

from pydantic import EmailStr, Field, StringConstraints

from school_api.models.student import Gender, StudentStatus
from school_api.schemas.common import CamelModel, OptionalUUID, Pagination, SchoolSummary
from school_api.schemas.validators import PhoneNumber

PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class StudentAddress(CamelModel):
    street: str | None = Field(None, max_length=200)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    country: str | None = Field("USA", max_length=100)


class StoredAddress(StudentAddress):
    """Address as stored; no defaults are filled in on the way out."""

    country: str | None = None


class Guardian(CamelModel):
    """Parent or guardian contact."""

    name: str | None = Field(None, max_length=200)
    relationship: str | None = Field(None, max_length=50)
    phone: PhoneNumber | None = None
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=500)


class StudentCreate(CamelModel):
    """Schema for creating a new student."""

    first_name: PersonName
    last_name: PersonName
    email: EmailStr | None = None
    school_id: OptionalUUID = None  # Defaults to the caller's school for school admins
    classroom_id: OptionalUUID = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    grade: str | None = Field(None, min_length=1, max_length=20)
    guardian: Guardian | None = None
    address: StudentAddress | None = None


class StudentUpdate(CamelModel):
    """Schema for updating a student.

    School and classroom are absent on purpose: they move only through
    transfer and enrollment.
    """

    student_id: UUID
    first_name: PersonName | None = None
    last_name: PersonName | None = None
    email: EmailStr | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    grade: str | None = Field(None, min_length=1, max_length=20)
    guardian: Guardian | None = None
    address: StudentAddress | None = None
    status: StudentStatus | None = None
    is_active: bool | None = None


class TransferRequest(CamelModel):
    student_id: UUID
    to_school_id: UUID
    reason: str | None = Field(None, max_length=500)


class EnrollRequest(CamelModel):
    student_id: UUID
    classroom_id: UUID


class ClassroomSummary(CamelModel):
    id: UUID
    name: str
    grade: str | None = None
    section: str | None = None


class PreviousSchoolResponse(CamelModel):
    school_id: UUID | None
    school_name: str
    enrollment_date: datetime | None
    transfer_date: datetime
    reason: str


class StudentResponse(CamelModel):
    """Student response schema."""

    id: UUID
    student_code: str
    first_name: str
    last_name: str
    full_name: str
    email: str | None
    date_of_birth: date | None
    gender: Gender | None
    grade: str | None
    guardian: Guardian | None
    address: StoredAddress | None
    school_id: UUID
    school: SchoolSummary | None = None
    classroom_id: UUID | None
    classroom: ClassroomSummary | None = None
    status: StudentStatus
    enrollment_date: datetime
    previous_schools: list[PreviousSchoolResponse]
    is_active: bool
    created_by_id: UUID | None
    created_at: datetime
    updated_at: datetime


class StudentData(CamelModel):
    student: StudentResponse


class StudentListData(CamelModel):
    """Paginated list of students."""

    students: list[StudentResponse]
    pagination: Pagination


class TransferSummary(CamelModel):
    from_: SchoolSummary = Field(..., alias="from")
    to: SchoolSummary
    date: datetime


class TransferData(CamelModel):
    student: StudentResponse
    transfer: TransferSummary


class StudentDeleted(CamelModel):
    message: str
