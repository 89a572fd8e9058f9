"""School routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.core.database import get_db
from school_api.core.deps import SuperadminPrincipal
from school_api.models.school import SchoolType
from school_api.schemas.common import Envelope, Pagination
from school_api.schemas.school import (
    SchoolCreate,
    SchoolData,
    SchoolDeleted,
    SchoolListData,
    SchoolResponse,
    SchoolUpdate,
)
from school_api.services import school as school_service

router = APIRouter(prefix="/school", tags=["Schools"])


# ============== Endpoints ==============


@router.post("/createSchool", response_model=Envelope[SchoolData])
async def create_school(
    school_data: SchoolCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperadminPrincipal,
) -> Envelope[SchoolData]:
    """
    Create a new school.

    - Only SUPERADMIN can create schools
    """
    school = await school_service.create_school(db, principal, school_data)
    return Envelope[SchoolData](data=SchoolData(school=SchoolResponse.model_validate(school)))


@router.get("/getSchool", response_model=Envelope[SchoolData])
async def get_school(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperadminPrincipal,
    school_id: UUID = Query(..., alias="schoolId"),
) -> Envelope[SchoolData]:
    """Get a specific school by ID."""
    school = await school_service.get_school(db, principal, school_id)
    return Envelope[SchoolData](data=SchoolData(school=SchoolResponse.model_validate(school)))


@router.get("/getAllSchools", response_model=Envelope[SchoolListData])
async def list_schools(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperadminPrincipal,
    is_active: bool | None = Query(None, alias="isActive", description="Filter by active status"),
    school_type: SchoolType | None = Query(None, alias="schoolType", description="Filter by school type"),
    search: str | None = Query(None, description="Search by school name or city"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Max number of records"),
) -> Envelope[SchoolListData]:
    """List schools, newest first."""
    schools, total = await school_service.get_schools(
        db,
        principal,
        is_active=is_active,
        school_type=school_type,
        search=search,
        page=page,
        limit=limit,
    )

    return Envelope[SchoolListData](
        data=SchoolListData(
            schools=[SchoolResponse.model_validate(s) for s in schools],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.put("/updateSchool", response_model=Envelope[SchoolData])
async def update_school(
    school_data: SchoolUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperadminPrincipal,
) -> Envelope[SchoolData]:
    """
    Update a school.

    - Address sub-fields are merged; other supplied fields replace
    """
    school = await school_service.update_school(db, principal, school_data)
    return Envelope[SchoolData](data=SchoolData(school=SchoolResponse.model_validate(school)))


@router.delete("/deleteSchool", response_model=Envelope[SchoolDeleted])
async def delete_school(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperadminPrincipal,
    school_id: UUID = Query(..., alias="schoolId"),
) -> Envelope[SchoolDeleted]:
    """
    Deactivate a school (soft delete).

    - Refused while the school has active students or classrooms
    """
    await school_service.delete_school(db, principal, school_id)
    return Envelope[SchoolDeleted](data=SchoolDeleted(message="School deactivated successfully"))
