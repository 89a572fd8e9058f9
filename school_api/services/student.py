"""Student service."""

import secrets
import string
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_api.core.config import settings
from school_api.core.database import utcnow
from school_api.core.exceptions import ConflictError, NotFoundError, ValidationFailedError, store_errors
from school_api.core.permissions import Principal, ensure_school_access
from school_api.models.student import PreviousSchool, Student, StudentStatus
from school_api.schemas.student import (
    EnrollRequest,
    StudentAddress,
    StudentCreate,
    StudentUpdate,
    TransferRequest,
)
from school_api.services.classroom import get_classroom_by_id
from school_api.services.counters import (
    release_classroom_seat,
    release_school_seat,
    reserve_classroom_seat,
    reserve_school_seat,
)
from school_api.services.school import get_school_by_id

logger = structlog.get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_RANDOM_LENGTH = 6

DUPLICATE_EMAIL = "A student with this email already exists in this school"
SCHOOL_FULL = "School has reached maximum student capacity"
CLASSROOM_FULL = "Classroom has reached maximum capacity"

# Update fields that an explicit null leaves untouched
REQUIRED_FIELDS = frozenset({"first_name", "last_name", "status"})


def generate_student_code(prefix: str | None = None, year: int | None = None) -> str:
    """
    Generate a human-readable student code.

    Format: prefix + last 2 digits of the year + 6 random uppercase alphanumerics.

    Examples:
        STU26K3X9QZ
        STU2607AB1C

    Uniqueness is enforced by the database; callers retry on collision.
    """
    prefix = settings.STUDENT_ID_PREFIX if prefix is None else prefix
    year = utcnow().year if year is None else year
    random_part = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_RANDOM_LENGTH))
    return f"{prefix}{year % 100:02d}{random_part}"


async def get_student_by_id(db: AsyncSession, student_id: UUID) -> Student | None:
    """Get student by ID with school and classroom loaded."""
    result = await db.execute(
        select(Student)
        .options(selectinload(Student.school), selectinload(Student.classroom))
        .where(Student.id == student_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def email_taken(
    db: AsyncSession,
    school_id: UUID,
    email: str,
    *,
    exclude_id: UUID | None = None,
) -> bool:
    """Whether an active student of the school already uses this email."""
    query = select(Student.id).where(
        Student.school_id == school_id,
        Student.email == email,
        Student.is_active == True,
    )
    if exclude_id is not None:
        query = query.where(Student.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.first() is not None


async def _get_owned_student(db: AsyncSession, principal: Principal, student_id: UUID) -> Student:
    student = await get_student_by_id(db, student_id)
    if not student:
        raise NotFoundError("Student not found")
    ensure_school_access(principal, student.school_id, "student")
    return student


async def _insert_student(db: AsyncSession, student_fields: dict[str, Any]) -> UUID:
    """Insert a student, resampling the code on collision.

    Must run before anything else is written in the transaction: a collision
    rolls the whole transaction back.
    """
    for attempt in range(1, settings.STUDENT_ID_MAX_ATTEMPTS + 1):
        student = Student(student_code=generate_student_code(), **student_fields)
        db.add(student)
        try:
            await db.flush()
        except IntegrityError as exc:
            if "student_code" not in str(exc.orig):
                raise
            await db.rollback()
            logger.warning("student_code_collision", attempt=attempt)
            continue
        return student.id

    raise ConflictError("Could not generate a unique student ID")


@store_errors("Failed to create student", conflict="Student ID or email already exists")
async def create_student(db: AsyncSession, principal: Principal, student_data: StudentCreate) -> Student:
    """Create a student and take a seat in its school and, if given, its classroom."""
    school_id = principal.target_school(student_data.school_id)
    if not school_id:
        raise ValidationFailedError("School ID is required")

    school = await get_school_by_id(db, school_id)
    if not school:
        raise NotFoundError("School not found")
    if not school.is_active:
        raise ConflictError("Cannot add student to inactive school")
    if school.current_student_count >= school.max_students:
        raise ConflictError(SCHOOL_FULL)

    classroom_id = student_data.classroom_id
    if classroom_id:
        classroom = await get_classroom_by_id(db, classroom_id)
        if not classroom:
            raise NotFoundError("Classroom not found")
        if classroom.school_id != school_id:
            raise ConflictError("Classroom does not belong to the specified school")
        if not classroom.is_active:
            raise ConflictError("Cannot enroll student in inactive classroom")
        if classroom.current_student_count >= classroom.capacity:
            raise ConflictError(CLASSROOM_FULL)

    if student_data.email and await email_taken(db, school_id, student_data.email):
        raise ConflictError(DUPLICATE_EMAIL)

    student_id = await _insert_student(
        db,
        {
            "school_id": school_id,
            "classroom_id": classroom_id,
            "first_name": student_data.first_name,
            "last_name": student_data.last_name,
            "email": student_data.email,
            "date_of_birth": student_data.date_of_birth,
            "gender": student_data.gender,
            "grade": student_data.grade,
            "guardian": student_data.guardian.model_dump(mode="json") if student_data.guardian else {},
            "address": (student_data.address or StudentAddress()).model_dump(mode="json"),
            "status": StudentStatus.ENROLLED,
            "enrollment_date": utcnow(),
            "is_active": True,
            "created_by_id": principal.user_id,
        },
    )

    if not await reserve_school_seat(db, school_id):
        raise ConflictError(SCHOOL_FULL)
    if classroom_id and not await reserve_classroom_seat(db, classroom_id):
        raise ConflictError(CLASSROOM_FULL)

    await db.commit()

    logger.info(
        "student_created",
        student_id=str(student_id),
        school_id=str(school_id),
        classroom_id=str(classroom_id) if classroom_id else None,
    )
    return await get_student_by_id(db, student_id)


@store_errors("Invalid student ID format")
async def get_student(db: AsyncSession, principal: Principal, student_id: UUID) -> Student:
    return await _get_owned_student(db, principal, student_id)


@store_errors("Failed to fetch students")
async def get_students(
    db: AsyncSession,
    principal: Principal,
    *,
    school_id: UUID | None = None,
    classroom_id: UUID | None = None,
    status: StudentStatus | None = None,
    grade: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Student], int]:
    """Get list of students. School admins only ever see their own school."""
    if not principal.is_superadmin:
        school_id = principal.school_id

    query = select(Student).options(selectinload(Student.school), selectinload(Student.classroom))
    count_query = select(func.count()).select_from(Student)

    # Apply filters
    if school_id is not None:
        query = query.where(Student.school_id == school_id)
        count_query = count_query.where(Student.school_id == school_id)

    if classroom_id is not None:
        query = query.where(Student.classroom_id == classroom_id)
        count_query = count_query.where(Student.classroom_id == classroom_id)

    if status is not None:
        query = query.where(Student.status == status)
        count_query = count_query.where(Student.status == status)

    if grade:
        query = query.where(Student.grade == grade)
        count_query = count_query.where(Student.grade == grade)

    if is_active is not None:
        query = query.where(Student.is_active == is_active)
        count_query = count_query.where(Student.is_active == is_active)

    if search:
        search_filter = or_(
            Student.first_name.ilike(f"%{search}%"),
            Student.last_name.ilike(f"%{search}%"),
            Student.email.ilike(f"%{search}%"),
            Student.student_code.ilike(f"%{search}%"),
        )
        query = query.where(search_filter)
        count_query = count_query.where(search_filter)

    # Get total count
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Get paginated results
    query = (
        query.order_by(Student.last_name, Student.first_name, Student.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    students = list(result.scalars().all())

    return students, total


@store_errors("Failed to update student", conflict=DUPLICATE_EMAIL)
async def update_student(db: AsyncSession, principal: Principal, student_data: StudentUpdate) -> Student:
    """Update a student. School and classroom only change through transfer and enrollment.

    Toggling is_active releases or retakes the student's seats so that the
    school and classroom counters keep matching the active students.
    """
    student = await _get_owned_student(db, principal, student_data.student_id)
    school_id, classroom_id = student.school_id, student.classroom_id

    update_data = student_data.model_dump(
        exclude_unset=True,
        exclude={"student_id", "guardian", "address", "is_active"},
    )
    becomes_active = student_data.is_active is True and not student.is_active
    becomes_inactive = student_data.is_active is False and student.is_active
    stays_active = student.is_active and not becomes_inactive

    new_email = update_data.get("email", student.email)
    if new_email and (becomes_active or (stays_active and new_email != student.email)):
        if await email_taken(db, school_id, new_email, exclude_id=student.id):
            raise ConflictError(DUPLICATE_EMAIL)

    for field, value in update_data.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(student, field, value)

    if student_data.guardian is not None:
        student.guardian = student_data.guardian.model_dump(mode="json")
    if student_data.address is not None:
        student.address = student_data.address.model_dump(mode="json")

    if becomes_active:
        student.is_active = True
        if not await reserve_school_seat(db, school_id):
            raise ConflictError(SCHOOL_FULL)
        if classroom_id and not await reserve_classroom_seat(db, classroom_id):
            raise ConflictError(CLASSROOM_FULL)
    elif becomes_inactive:
        student.is_active = False
        await release_school_seat(db, school_id)
        if classroom_id:
            await release_classroom_seat(db, classroom_id)

    await db.commit()

    logger.info("student_updated", student_id=str(student.id), fields=sorted(student_data.model_fields_set))
    return await get_student_by_id(db, student.id)


@store_errors("Failed to delete student")
async def delete_student(db: AsyncSession, principal: Principal, student_id: UUID) -> None:
    """Hard delete a student and give back its seats."""
    student = await _get_owned_student(db, principal, student_id)
    school_id, classroom_id, was_active = student.school_id, student.classroom_id, student.is_active

    await db.delete(student)
    if was_active:
        await release_school_seat(db, school_id)
        if classroom_id:
            await release_classroom_seat(db, classroom_id)

    await db.commit()

    logger.info("student_deleted", student_id=str(student_id), school_id=str(school_id))


@store_errors("Failed to transfer student", conflict="Failed to transfer student")
async def transfer_student(
    db: AsyncSession,
    principal: Principal,
    transfer_data: TransferRequest,
) -> tuple[Student, dict[str, Any]]:
    """Move a student to another school, recording the school it leaves.

    The student keeps status enrolled and loses its classroom; the history row
    is the record of the transfer.
    """
    student = await get_student_by_id(db, transfer_data.student_id)
    if not student:
        raise NotFoundError("Student not found")
    if not student.is_active:
        raise ConflictError("Cannot transfer an inactive student")
    if student.school_id == transfer_data.to_school_id:
        raise ConflictError("Student is already in this school")

    destination = await get_school_by_id(db, transfer_data.to_school_id)
    if not destination:
        raise NotFoundError("Destination school not found")
    if not destination.is_active:
        raise ConflictError("Cannot transfer to inactive school")
    if destination.current_student_count >= destination.max_students:
        raise ConflictError("Destination school has reached maximum capacity")
    if student.email and await email_taken(db, destination.id, student.email):
        raise ConflictError("A student with this email already exists in the destination school")

    source = student.school
    source_classroom_id = student.classroom_id
    transfer_date: datetime = utcnow()

    student.previous_schools.append(
        PreviousSchool(
            school_id=source.id,
            school_name=source.name,
            enrollment_date=student.enrollment_date,
            transfer_date=transfer_date,
            reason=transfer_data.reason or "Transfer",
        )
    )
    student.school_id = destination.id
    student.classroom_id = None
    student.enrollment_date = transfer_date
    student.status = StudentStatus.ENROLLED

    if not await reserve_school_seat(db, destination.id):
        raise ConflictError("Destination school has reached maximum capacity")
    await release_school_seat(db, source.id)
    if source_classroom_id:
        await release_classroom_seat(db, source_classroom_id)

    summary = {
        "from": {"id": source.id, "name": source.name},
        "to": {"id": destination.id, "name": destination.name},
        "date": transfer_date,
    }
    await db.commit()

    logger.info(
        "student_transferred",
        student_id=str(student.id),
        from_school_id=str(source.id),
        to_school_id=str(destination.id),
    )
    return await get_student_by_id(db, student.id), summary


@store_errors("Failed to enroll student in classroom", conflict=CLASSROOM_FULL)
async def enroll_in_classroom(db: AsyncSession, principal: Principal, enroll_data: EnrollRequest) -> Student:
    """Assign a student to a classroom of its school, moving its seat if it had one."""
    student = await _get_owned_student(db, principal, enroll_data.student_id)
    if not student.is_active:
        raise ConflictError("Cannot enroll an inactive student")

    classroom = await get_classroom_by_id(db, enroll_data.classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    if classroom.school_id != student.school_id:
        raise ConflictError("Classroom does not belong to the student's school")
    if not classroom.is_active:
        raise ConflictError("Cannot enroll in inactive classroom")
    if student.classroom_id == classroom.id:
        raise ConflictError("Student is already enrolled in this classroom")
    if classroom.current_student_count >= classroom.capacity:
        raise ConflictError(CLASSROOM_FULL)

    previous_classroom_id = student.classroom_id
    student.classroom_id = classroom.id

    if not await reserve_classroom_seat(db, classroom.id):
        raise ConflictError(CLASSROOM_FULL)
    if previous_classroom_id:
        await release_classroom_seat(db, previous_classroom_id)

    await db.commit()

    logger.info(
        "student_enrolled",
        student_id=str(student.id),
        classroom_id=str(classroom.id),
        previous_classroom_id=str(previous_classroom_id) if previous_classroom_id else None,
    )
    return await get_student_by_id(db, student.id)
