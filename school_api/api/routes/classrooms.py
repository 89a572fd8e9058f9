"""Classroom routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.core.database import get_db
from school_api.core.deps import SchoolAdminPrincipal
from school_api.schemas.classroom import (
    ClassroomCreate,
    ClassroomData,
    ClassroomDeleted,
    ClassroomListData,
    ClassroomResponse,
    ClassroomUpdate,
)
from school_api.schemas.common import Envelope, OptionalUUID, Pagination
from school_api.services import classroom as classroom_service

router = APIRouter(prefix="/classroom", tags=["Classrooms"])


@router.post("/createClassroom", response_model=Envelope[ClassroomData])
async def create_classroom(
    classroom_data: ClassroomCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
) -> Envelope[ClassroomData]:
    """
    Create a classroom.

    - SCHOOL_ADMIN: always in their own school
    - SUPERADMIN: schoolId is required
    """
    classroom = await classroom_service.create_classroom(db, principal, classroom_data)
    return Envelope[ClassroomData](data=ClassroomData(classroom=ClassroomResponse.model_validate(classroom)))


@router.get("/getClassroom", response_model=Envelope[ClassroomData])
async def get_classroom(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
    classroom_id: UUID = Query(..., alias="classroomId"),
) -> Envelope[ClassroomData]:
    classroom = await classroom_service.get_classroom(db, principal, classroom_id)
    return Envelope[ClassroomData](data=ClassroomData(classroom=ClassroomResponse.model_validate(classroom)))


@router.get("/getClassrooms", response_model=Envelope[ClassroomListData])
async def list_classrooms(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
    school_id: OptionalUUID = Query(None, alias="schoolId", description="Filter by school (superadmin)"),
    is_active: bool | None = Query(None, alias="isActive", description="Filter by active status"),
    grade: str | None = Query(None, description="Filter by grade"),
    search: str | None = Query(None, description="Search by name or room number"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Max number of records"),
) -> Envelope[ClassroomListData]:
    """
    List classrooms.

    - SUPERADMIN: any school, or all schools
    - SCHOOL_ADMIN: only their own school
    """
    classrooms, total = await classroom_service.get_classrooms(
        db,
        principal,
        school_id=school_id,
        is_active=is_active,
        grade=grade,
        search=search,
        page=page,
        limit=limit,
    )

    return Envelope[ClassroomListData](
        data=ClassroomListData(
            classrooms=[ClassroomResponse.model_validate(c) for c in classrooms],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.put("/updateClassroom", response_model=Envelope[ClassroomData])
async def update_classroom(
    classroom_data: ClassroomUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
) -> Envelope[ClassroomData]:
    classroom = await classroom_service.update_classroom(db, principal, classroom_data)
    return Envelope[ClassroomData](data=ClassroomData(classroom=ClassroomResponse.model_validate(classroom)))


@router.delete("/deleteClassroom", response_model=Envelope[ClassroomDeleted])
async def delete_classroom(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SchoolAdminPrincipal,
    classroom_id: UUID = Query(..., alias="classroomId"),
) -> Envelope[ClassroomDeleted]:
    """Delete an empty classroom."""
    await classroom_service.delete_classroom(db, principal, classroom_id)
    return Envelope[ClassroomDeleted](data=ClassroomDeleted(message="Classroom deleted successfully"))
