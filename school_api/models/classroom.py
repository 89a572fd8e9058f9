"""Classroom model."""

from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_api.core.database import BaseModel


class Classroom(BaseModel):
    """Classroom owned by a single school for its whole lifetime."""

    __tablename__ = "classrooms"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_classroom_school_name"),
        CheckConstraint(
            "current_student_count >= 0 AND current_student_count <= capacity",
            name="ck_classroom_occupancy",
        ),
    )

    school_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    grade: Mapped[str | None] = mapped_column(String(20))
    section: Mapped[str | None] = mapped_column(String(10))
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    current_student_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    room_number: Mapped[str | None] = mapped_column(String(20))
    floor: Mapped[int | None] = mapped_column(Integer)
    resources: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    schedule: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
        index=True,
    )
    created_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    # Relationships
    school: Mapped["School"] = relationship("School", back_populates="classrooms")
    students: Mapped[list["Student"]] = relationship("Student", back_populates="classroom")

    @property
    def available_capacity(self) -> int:
        return self.capacity - self.current_student_count

    def __repr__(self) -> str:
        return f"<Classroom(id={self.id}, name={self.name})>"
