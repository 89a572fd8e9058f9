"""Classroom schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated
from uuid import UUID

from pydantic import Field, StringConstraints, model_validator

from school_api.core.config import settings
from school_api.schemas.common import CamelModel, OptionalUUID, Pagination, SchoolSummary

ClassroomName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class ResourceCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class Resource(CamelModel):
    """Equipment item kept in a classroom."""

    name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=0)
    condition: ResourceCondition = ResourceCondition.GOOD


class Schedule(CamelModel):
    start_time: str | None = Field(None, pattern=TIME_PATTERN)
    end_time: str | None = Field(None, pattern=TIME_PATTERN)

    @model_validator(mode="after")
    def check_order(self) -> "Schedule":
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        return self


class ClassroomCreate(CamelModel):
    """Schema for creating a new classroom."""

    name: ClassroomName
    school_id: OptionalUUID = None  # Defaults to the caller's school for school admins
    grade: str | None = Field(None, min_length=1, max_length=20)
    section: str | None = Field(None, min_length=1, max_length=10)
    capacity: int = Field(default=settings.DEFAULT_CLASSROOM_CAPACITY, ge=1, le=200)
    room_number: str | None = Field(None, min_length=1, max_length=20)
    floor: int | None = None
    resources: list[Resource] = Field(default_factory=list)
    schedule: Schedule | None = None


class ClassroomUpdate(CamelModel):
    """Schema for updating a classroom. The owning school cannot change."""

    classroom_id: UUID
    name: ClassroomName | None = None
    grade: str | None = Field(None, min_length=1, max_length=20)
    section: str | None = Field(None, min_length=1, max_length=10)
    capacity: int | None = Field(None, ge=1, le=200)
    room_number: str | None = Field(None, min_length=1, max_length=20)
    floor: int | None = None
    resources: list[Resource] | None = None
    schedule: Schedule | None = None
    is_active: bool | None = None


class ClassroomResponse(CamelModel):
    """Classroom response schema."""

    id: UUID
    school_id: UUID
    school: SchoolSummary | None = None
    name: str
    grade: str | None
    section: str | None
    capacity: int
    current_student_count: int
    available_capacity: int
    room_number: str | None
    floor: int | None
    resources: list[Resource]
    schedule: Schedule | None
    is_active: bool
    created_by_id: UUID | None
    created_at: datetime
    updated_at: datetime


class ClassroomData(CamelModel):
    classroom: ClassroomResponse


class ClassroomListData(CamelModel):
    """Paginated list of classrooms."""

    classrooms: list[ClassroomResponse]
    pagination: Pagination


class ClassroomDeleted(CamelModel):
    message: str
