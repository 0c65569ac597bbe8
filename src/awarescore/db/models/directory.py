"""Directory models: users and departments of a tenant."""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin


class Department(Base, TimestampMixin):
    """Organizational unit users are grouped into for reporting."""

    __tablename__ = "departments"

    department_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    users: Mapped[list["User"]] = relationship("User", back_populates="department")

    __table_args__ = (Index("idx_department_tenant", "tenant_id"),)

    def __repr__(self) -> str:
        return f"<Department(id={self.department_id}, name={self.name})>"


class User(Base, TimestampMixin):
    """A person whose security behavior is scored.

    Only the attributes the analytics engine reads are mapped here; the
    rest of the user record belongs to the identity service.
    """

    __tablename__ = "users"

    user_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    department_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("departments.department_id"), nullable=True
    )
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    department: Mapped[Department | None] = relationship("Department", back_populates="users")

    __table_args__ = (
        Index("idx_user_tenant", "tenant_id"),
        Index("idx_user_tenant_department", "tenant_id", "department_id"),
    )

    @property
    def display_name(self) -> str:
        """Full name, falling back to the email address."""
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email

    def __repr__(self) -> str:
        return f"<User(id={self.user_id}, email={self.email})>"
