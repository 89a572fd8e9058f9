"""Occupancy counter operations.

Increments are conditional UPDATEs so that two requests racing for the last
seat cannot both succeed. None of these functions commit; they run inside the
caller's transaction together with the primary write.
"""

from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.core.exceptions import store_errors
from school_api.models.classroom import Classroom
from school_api.models.school import School
from school_api.models.student import Student

logger = structlog.get_logger(__name__)


async def reserve_school_seat(db: AsyncSession, school_id: UUID) -> bool:
    """Increment the school counter if it is below max_students."""
    result = await db.execute(
        update(School)
        .where(School.id == school_id, School.current_student_count < School.max_students)
        .values(current_student_count=School.current_student_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def release_school_seat(db: AsyncSession, school_id: UUID) -> None:
    await db.execute(
        update(School)
        .where(School.id == school_id, School.current_student_count > 0)
        .values(current_student_count=School.current_student_count - 1)
        .execution_options(synchronize_session=False)
    )


async def reserve_classroom_seat(db: AsyncSession, classroom_id: UUID) -> bool:
    """Increment the classroom counter if it is below capacity."""
    result = await db.execute(
        update(Classroom)
        .where(Classroom.id == classroom_id, Classroom.current_student_count < Classroom.capacity)
        .values(current_student_count=Classroom.current_student_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def release_classroom_seat(db: AsyncSession, classroom_id: UUID) -> None:
    await db.execute(
        update(Classroom)
        .where(Classroom.id == classroom_id, Classroom.current_student_count > 0)
        .values(current_student_count=Classroom.current_student_count - 1)
        .execution_options(synchronize_session=False)
    )


async def count_active_students(
    db: AsyncSession,
    *,
    school_id: UUID | None = None,
    classroom_id: UUID | None = None,
) -> int:
    """Live count of active students, independent of the cached counters."""
    query = select(func.count()).select_from(Student).where(Student.is_active == True)
    if school_id is not None:
        query = query.where(Student.school_id == school_id)
    if classroom_id is not None:
        query = query.where(Student.classroom_id == classroom_id)
    result = await db.execute(query)
    return result.scalar() or 0


@store_errors("Failed to reconcile counters")
async def reconcile_counters(db: AsyncSession) -> int:
    """Recompute every school and classroom counter from active students.

    Returns the number of rows whose counter was corrected.
    """
    school_counts = dict(
        (
            await db.execute(
                select(Student.school_id, func.count())
                .where(Student.is_active == True)
                .group_by(Student.school_id)
            )
        ).all()
    )
    classroom_counts = dict(
        (
            await db.execute(
                select(Student.classroom_id, func.count())
                .where(Student.is_active == True, Student.classroom_id != None)
                .group_by(Student.classroom_id)
            )
        ).all()
    )

    corrected = 0

    schools = (
        await db.execute(select(School).execution_options(populate_existing=True))
    ).scalars().all()
    for school in schools:
        actual = school_counts.get(school.id, 0)
        if school.current_student_count != actual:
            logger.warning(
                "counter_drift",
                entity="school",
                id=str(school.id),
                cached=school.current_student_count,
                actual=actual,
            )
            school.current_student_count = actual
            corrected += 1

    classrooms = (
        await db.execute(select(Classroom).execution_options(populate_existing=True))
    ).scalars().all()
    for classroom in classrooms:
        actual = classroom_counts.get(classroom.id, 0)
        if classroom.current_student_count != actual:
            logger.warning(
                "counter_drift",
                entity="classroom",
                id=str(classroom.id),
                cached=classroom.current_student_count,
                actual=actual,
            )
            classroom.current_student_count = actual
            corrected += 1

    await db.commit()
    logger.info("counters_reconciled", corrected=corrected)
    return corrected
