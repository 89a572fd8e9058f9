"""School service."""

from uuid import UUID

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.core.config import settings
from school_api.core.exceptions import ConflictError, NotFoundError, store_errors
from school_api.core.permissions import Principal
from school_api.models.classroom import Classroom
from school_api.models.school import School, SchoolType
from school_api.schemas.school import SchoolCreate, SchoolUpdate
from school_api.services.counters import count_active_students

logger = structlog.get_logger(__name__)


async def get_school_by_id(db: AsyncSession, school_id: UUID) -> School | None:
    """Get school by ID, refreshing any stale copy held by the session."""
    result = await db.execute(
        select(School).where(School.id == school_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_school_by_name(db: AsyncSession, name: str) -> School | None:
    """Get school by name, active or not."""
    result = await db.execute(select(School).where(School.name == name))
    return result.scalar_one_or_none()


@store_errors("Failed to create school", conflict="A school with this name already exists")
async def create_school(db: AsyncSession, principal: Principal, school_data: SchoolCreate) -> School:
    """Create a new school."""
    if await get_school_by_name(db, school_data.name):
        raise ConflictError("A school with this name already exists")

    school = School(
        name=school_data.name,
        phone=school_data.phone,
        email=school_data.email,
        website=school_data.website,
        established_year=school_data.established_year,
        school_type=school_data.school_type,
        max_students=school_data.max_students or settings.DEFAULT_SCHOOL_MAX_STUDENTS,
        current_student_count=0,
        is_active=True,
        created_by_id=principal.user_id,
    )
    if school_data.address:
        school.merge_address(school_data.address.model_dump(exclude_unset=True))

    db.add(school)
    await db.commit()
    await db.refresh(school)

    logger.info("school_created", school_id=str(school.id), name=school.name)
    return school


@store_errors("Invalid school ID format")
async def get_school(db: AsyncSession, principal: Principal, school_id: UUID) -> School:
    school = await get_school_by_id(db, school_id)
    if not school:
        raise NotFoundError("School not found")
    return school


@store_errors("Failed to fetch schools")
async def get_schools(
    db: AsyncSession,
    principal: Principal,
    *,
    is_active: bool | None = None,
    school_type: SchoolType | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[School], int]:
    """Get list of schools with optional filters."""
    query = select(School)
    count_query = select(func.count()).select_from(School)

    # Apply filters
    if is_active is not None:
        query = query.where(School.is_active == is_active)
        count_query = count_query.where(School.is_active == is_active)

    if school_type is not None:
        query = query.where(School.school_type == school_type)
        count_query = count_query.where(School.school_type == school_type)

    if search:
        search_filter = or_(
            School.name.ilike(f"%{search}%"),
            School.address_city.ilike(f"%{search}%"),
        )
        query = query.where(search_filter)
        count_query = count_query.where(search_filter)

    # Get total count
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Get paginated results
    query = query.order_by(School.created_at.desc()).offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    schools = list(result.scalars().all())

    return schools, total


@store_errors("Failed to update school", conflict="A school with this name already exists")
async def update_school(db: AsyncSession, principal: Principal, school_data: SchoolUpdate) -> School:
    """Update a school. Address sub-fields are merged, other supplied fields replace."""
    school = await get_school_by_id(db, school_data.school_id)
    if not school:
        raise NotFoundError("School not found")

    update_data = school_data.model_dump(exclude_unset=True, exclude={"school_id", "address"})

    new_name = update_data.get("name")
    if new_name and new_name != school.name:
        existing = await get_school_by_name(db, new_name)
        if existing and existing.id != school.id:
            raise ConflictError("A school with this name already exists")

    new_max = update_data.get("max_students")
    if new_max is not None and new_max < school.current_student_count:
        raise ConflictError(
            f"Cannot set max students below current student count ({school.current_student_count})"
        )

    for field, value in update_data.items():
        if value is not None:
            setattr(school, field, value)

    if school_data.address:
        school.merge_address(school_data.address.model_dump(exclude_unset=True))

    await db.commit()
    await db.refresh(school)

    logger.info("school_updated", school_id=str(school.id), fields=sorted(update_data))
    return school


@store_errors("Failed to delete school")
async def delete_school(db: AsyncSession, principal: Principal, school_id: UUID) -> School:
    """Soft delete a school that has no active students and no classrooms."""
    school = await get_school_by_id(db, school_id)
    if not school:
        raise NotFoundError("School not found")

    student_count = await count_active_students(db, school_id=school.id)
    if student_count > 0:
        raise ConflictError(
            f"Cannot delete school. {student_count} students are enrolled. "
            "Transfer or remove students first."
        )

    classroom_result = await db.execute(
        select(func.count()).select_from(Classroom).where(Classroom.school_id == school.id)
    )
    classroom_count = classroom_result.scalar() or 0
    if classroom_count > 0:
        raise ConflictError(
            f"Cannot delete school. {classroom_count} classrooms exist. Remove classrooms first."
        )

    school.is_active = False
    await db.commit()
    await db.refresh(school)

    logger.info("school_deactivated", school_id=str(school.id))
    return school
