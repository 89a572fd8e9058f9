"""Classroom service."""

from uuid import UUID

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_api.core.exceptions import ConflictError, NotFoundError, ValidationFailedError, store_errors
from school_api.core.permissions import Principal, ensure_school_access
from school_api.models.classroom import Classroom
from school_api.models.student import Student
from school_api.schemas.classroom import ClassroomCreate, ClassroomUpdate
from school_api.services.school import get_school_by_id

logger = structlog.get_logger(__name__)

DUPLICATE_NAME = "A classroom with this name already exists in this school"


async def get_classroom_by_id(db: AsyncSession, classroom_id: UUID) -> Classroom | None:
    """Get classroom by ID with its school loaded."""
    result = await db.execute(
        select(Classroom)
        .options(selectinload(Classroom.school))
        .where(Classroom.id == classroom_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_classroom_by_name(db: AsyncSession, school_id: UUID, name: str) -> Classroom | None:
    result = await db.execute(
        select(Classroom).where(Classroom.school_id == school_id, Classroom.name == name)
    )
    return result.scalar_one_or_none()


async def _get_owned_classroom(db: AsyncSession, principal: Principal, classroom_id: UUID) -> Classroom:
    classroom = await get_classroom_by_id(db, classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    ensure_school_access(principal, classroom.school_id, "classroom")
    return classroom


@store_errors("Failed to create classroom", conflict=DUPLICATE_NAME)
async def create_classroom(
    db: AsyncSession,
    principal: Principal,
    classroom_data: ClassroomCreate,
) -> Classroom:
    """Create a classroom in the caller's school, or the named school for superadmins."""
    school_id = principal.target_school(classroom_data.school_id)
    if not school_id:
        raise ValidationFailedError("School ID is required")

    school = await get_school_by_id(db, school_id)
    if not school:
        raise NotFoundError("School not found")
    if not school.is_active:
        raise ConflictError("Cannot add classroom to inactive school")

    if await get_classroom_by_name(db, school_id, classroom_data.name):
        raise ConflictError(DUPLICATE_NAME)

    classroom = Classroom(
        school_id=school_id,
        name=classroom_data.name,
        grade=classroom_data.grade,
        section=classroom_data.section,
        capacity=classroom_data.capacity,
        current_student_count=0,
        room_number=classroom_data.room_number,
        floor=classroom_data.floor,
        resources=[resource.model_dump(mode="json") for resource in classroom_data.resources],
        schedule=classroom_data.schedule.model_dump(mode="json") if classroom_data.schedule else {},
        is_active=True,
        created_by_id=principal.user_id,
    )

    db.add(classroom)
    await db.commit()

    logger.info("classroom_created", classroom_id=str(classroom.id), school_id=str(school_id))
    return await get_classroom_by_id(db, classroom.id)


@store_errors("Invalid classroom ID format")
async def get_classroom(db: AsyncSession, principal: Principal, classroom_id: UUID) -> Classroom:
    return await _get_owned_classroom(db, principal, classroom_id)


@store_errors("Failed to fetch classrooms")
async def get_classrooms(
    db: AsyncSession,
    principal: Principal,
    *,
    school_id: UUID | None = None,
    is_active: bool | None = None,
    grade: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Classroom], int]:
    """Get list of classrooms. School admins only ever see their own school."""
    if not principal.is_superadmin:
        school_id = principal.school_id

    query = select(Classroom).options(selectinload(Classroom.school))
    count_query = select(func.count()).select_from(Classroom)

    # Apply filters
    if school_id is not None:
        query = query.where(Classroom.school_id == school_id)
        count_query = count_query.where(Classroom.school_id == school_id)

    if is_active is not None:
        query = query.where(Classroom.is_active == is_active)
        count_query = count_query.where(Classroom.is_active == is_active)

    if grade:
        query = query.where(Classroom.grade == grade)
        count_query = count_query.where(Classroom.grade == grade)

    if search:
        search_filter = or_(
            Classroom.name.ilike(f"%{search}%"),
            Classroom.room_number.ilike(f"%{search}%"),
        )
        query = query.where(search_filter)
        count_query = count_query.where(search_filter)

    # Get total count
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Get paginated results
    query = query.order_by(Classroom.created_at.desc()).offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    classrooms = list(result.scalars().all())

    return classrooms, total


@store_errors("Failed to update classroom", conflict=DUPLICATE_NAME)
async def update_classroom(
    db: AsyncSession,
    principal: Principal,
    classroom_data: ClassroomUpdate,
) -> Classroom:
    """Update a classroom. Only supplied fields change."""
    classroom = await _get_owned_classroom(db, principal, classroom_data.classroom_id)

    update_data = classroom_data.model_dump(
        exclude_unset=True,
        exclude={"classroom_id", "resources", "schedule"},
    )

    new_name = update_data.get("name")
    if new_name and new_name != classroom.name:
        existing = await get_classroom_by_name(db, classroom.school_id, new_name)
        if existing and existing.id != classroom.id:
            raise ConflictError(DUPLICATE_NAME)

    new_capacity = update_data.get("capacity")
    if new_capacity is not None and new_capacity < classroom.current_student_count:
        raise ConflictError(
            f"Cannot set capacity below current student count ({classroom.current_student_count})"
        )

    for field, value in update_data.items():
        if value is not None:
            setattr(classroom, field, value)

    if classroom_data.resources is not None:
        classroom.resources = [resource.model_dump(mode="json") for resource in classroom_data.resources]
    if classroom_data.schedule is not None:
        classroom.schedule = classroom_data.schedule.model_dump(mode="json")

    await db.commit()

    logger.info("classroom_updated", classroom_id=str(classroom.id), fields=sorted(update_data))
    return await get_classroom_by_id(db, classroom.id)


@store_errors("Failed to delete classroom")
async def delete_classroom(db: AsyncSession, principal: Principal, classroom_id: UUID) -> None:
    """Hard delete an empty classroom."""
    classroom = await _get_owned_classroom(db, principal, classroom_id)

    if classroom.current_student_count > 0:
        raise ConflictError(
            f"Cannot delete classroom with {classroom.current_student_count} enrolled students. "
            "Transfer or remove students first."
        )

    # Inactive students may still point here
    await db.execute(
        update(Student)
        .where(Student.classroom_id == classroom.id)
        .values(classroom_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Classroom).where(Classroom.id == classroom.id))
    await db.commit()

    logger.info("classroom_deleted", classroom_id=str(classroom_id), school_id=str(classroom.school_id))
