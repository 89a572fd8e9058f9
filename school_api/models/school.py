"""School model."""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_api.core.database import BaseModel

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


class SchoolType(str, Enum):
    ELEMENTARY = "elementary"
    MIDDLE = "middle"
    HIGH = "high"
    K12 = "k-12"
    COLLEGE = "college"
    UNIVERSITY = "university"
    OTHER = "other"


class School(BaseModel):
    """School model - represents a tenant in the system."""

    __tablename__ = "schools"
    __table_args__ = (
        CheckConstraint("current_student_count >= 0", name="ck_school_student_count"),
    )

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)

    # Address
    address_street: Mapped[str | None] = mapped_column(String(200))
    address_city: Mapped[str | None] = mapped_column(String(100), index=True)
    address_state: Mapped[str | None] = mapped_column(String(100))
    address_zip_code: Mapped[str | None] = mapped_column(String(20))
    address_country: Mapped[str | None] = mapped_column(String(100), default="USA")

    phone: Mapped[str | None] = mapped_column(String(20))
    email: Mapped[str | None] = mapped_column(String(100))
    website: Mapped[str | None] = mapped_column(String(200))
    established_year: Mapped[int | None] = mapped_column(Integer)
    school_type: Mapped[SchoolType] = mapped_column(
        String(20),
        nullable=False,
        default=SchoolType.K12,
    )

    # Capacity bookkeeping
    max_students: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    current_student_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
        index=True,
    )
    created_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    # Relationships
    classrooms: Mapped[list["Classroom"]] = relationship("Classroom", back_populates="school")
    students: Mapped[list["Student"]] = relationship("Student", back_populates="school")
    users: Mapped[list["User"]] = relationship("User", back_populates="school")

    @property
    def address(self) -> dict[str, str | None]:
        return {field: getattr(self, f"address_{field}") for field in ADDRESS_FIELDS}

    def merge_address(self, address: dict[str, str | None]) -> None:
        """Overwrite only the supplied address sub-fields."""
        for field, value in address.items():
            if field in ADDRESS_FIELDS:
                setattr(self, f"address_{field}", value)

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name={self.name})>"
