"""Student model and its school history."""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_api.core.database import BaseModel, utcnow


class StudentStatus(str, Enum):
    ENROLLED = "enrolled"
    TRANSFERRED = "transferred"
    GRADUATED = "graduated"
    WITHDRAWN = "withdrawn"
    SUSPENDED = "suspended"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class Student(BaseModel):
    """Student enrolled in a school and optionally assigned to one of its classrooms."""

    __tablename__ = "students"
    __table_args__ = (
        # Email is unique per school among active students only
        Index(
            "uq_student_school_email_active",
            "school_id",
            "email",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_student_name", "last_name", "first_name"),
    )

    # Human-readable code, e.g. STU26K3X9QZ
    student_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    school_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id"),
        nullable=False,
        index=True,
    )
    classroom_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("classrooms.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(100))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    gender: Mapped[Gender | None] = mapped_column(String(20))
    grade: Mapped[str | None] = mapped_column(String(20))
    guardian: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    address: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    status: Mapped[StudentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=StudentStatus.ENROLLED,
        index=True,
    )
    enrollment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
        index=True,
    )
    created_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    # Relationships
    school: Mapped["School"] = relationship("School", back_populates="students")
    classroom: Mapped["Classroom | None"] = relationship("Classroom", back_populates="students")
    previous_schools: Mapped[list["PreviousSchool"]] = relationship(
        "PreviousSchool",
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="PreviousSchool.transfer_date",
        lazy="selectin",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, code={self.student_code}, name={self.full_name})>"


class PreviousSchool(BaseModel):
    """Append-only record of a school a student left through a transfer."""

    __tablename__ = "student_previous_schools"

    student_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    school_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="SET NULL"),
        nullable=True,
    )
    school_name: Mapped[str] = mapped_column(String(200), nullable=False)
    enrollment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    transfer_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False, default="Transfer")

    student: Mapped["Student"] = relationship("Student", back_populates="previous_schools")
