"""User model."""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_api.core.database import BaseModel
from school_api.core.permissions import Principal, Role


class User(BaseModel):
    """User model for authentication and authorization."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        String(20),
        nullable=False,
        default=Role.SCHOOL_ADMIN,
    )
    school_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="SET NULL"),
        nullable=True,  # NULL for superadmins
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    school: Mapped["School | None"] = relationship("School", back_populates="users")

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    def to_principal(self) -> Principal:
        return Principal(role=Role(self.role), user_id=self.id, school_id=self.school_id)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
