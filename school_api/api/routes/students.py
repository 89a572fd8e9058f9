"""Student routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.core.database import get_db
from school_api.core.deps import SchoolAdminPrincipal, SuperadminPrincipal
from school_api.models.student import StudentStatus
from school_api.schemas.common import Envelope, OptionalUUID, Pagination
from school_api.schemas.student import (
    EnrollRequest,
    StudentCreate,
    StudentData,
    StudentDeleted,
    StudentListData,
    StudentResponse,
    StudentUpdate,
    TransferData,
    TransferRequest,
    TransferSummary,
)
from school_api.services import student as student_service

router = APIRouter(prefix="/student", tags=["Students"])


@router.post("/createStudent", response_model=Envelope[StudentData])
async def create_student(
    student_data: StudentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
) -> Envelope[StudentData]:
    """
    Create a student.

    - Takes a seat in the school and, if classroomId is given, in the classroom
    """
    student = await student_service.create_student(db, principal, student_data)
    return Envelope[StudentData](data=StudentData(student=StudentResponse.model_validate(student)))


@router.get("/getStudent", response_model=Envelope[StudentData])
async def get_student(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
    student_id: UUID = Query(..., alias="studentId"),
) -> Envelope[StudentData]:
    student = await student_service.get_student(db, principal, student_id)
    return Envelope[StudentData](data=StudentData(student=StudentResponse.model_validate(student)))


@router.get("/getStudents", response_model=Envelope[StudentListData])
async def list_students(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
    school_id: OptionalUUID = Query(None, alias="schoolId", description="Filter by school (superadmin)"),
    classroom_id: OptionalUUID = Query(None, alias="classroomId", description="Filter by classroom"),
    student_status: StudentStatus | None = Query(None, alias="status", description="Filter by status"),
    grade: str | None = Query(None, description="Filter by grade"),
    is_active: bool | None = Query(None, alias="isActive", description="Filter by active status"),
    search: str | None = Query(None, description="Search by name, email or student code"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Max number of records"),
) -> Envelope[StudentListData]:
    """List students sorted by last name, then first name."""
    students, total = await student_service.get_students(
        db,
        principal,
        school_id=school_id,
        classroom_id=classroom_id,
        status=student_status,
        grade=grade,
        is_active=is_active,
        search=search,
        page=page,
        limit=limit,
    )

    return Envelope[StudentListData](
        data=StudentListData(
            students=[StudentResponse.model_validate(s) for s in students],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.put("/updateStudent", response_model=Envelope[StudentData])
async def update_student(
    student_data: StudentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
) -> Envelope[StudentData]:
    """
    Update a student.

    - School changes go through transferStudent, classroom changes through enrollInClassroom
    """
    student = await student_service.update_student(db, principal, student_data)
    return Envelope[StudentData](data=StudentData(student=StudentResponse.model_validate(student)))


@router.delete("/deleteStudent", response_model=Envelope[StudentDeleted])
async def delete_student(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
    student_id: UUID = Query(..., alias="studentId"),
) -> Envelope[StudentDeleted]:
    await student_service.delete_student(db, principal, student_id)
    return Envelope[StudentDeleted](data=StudentDeleted(message="Student deleted successfully"))


@router.post("/transferStudent", response_model=Envelope[TransferData])
async def transfer_student(
    transfer_data: TransferRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperadminPrincipal,
) -> Envelope[TransferData]:
    """
    Transfer a student to another school.

    - Only SUPERADMIN can transfer students
    """
    student, summary = await student_service.transfer_student(db, principal, transfer_data)
    return Envelope[TransferData](
        data=TransferData(
            student=StudentResponse.model_validate(student),
            transfer=TransferSummary.model_validate(summary),
        )
    )


@router.post("/enrollInClassroom", response_model=Envelope[StudentData])
async def enroll_in_classroom(
    enroll_data: EnrollRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
) -> Envelope[StudentData]:
    student = await student_service.enroll_in_classroom(db, principal, enroll_data)
    return Envelope[StudentData](data=StudentData(student=StudentResponse.model_validate(student)))
