"""Training enrollment and quiz attempt models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Float, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, UTCDateTime


class EnrollmentStatus(str, Enum):
    """Lifecycle status of a course enrollment."""

    ENROLLED = "ENROLLED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"
    EXPIRED = "EXPIRED"


class Enrollment(Base):
    """A user's enrollment in a training course."""

    __tablename__ = "enrollments"

    enrollment_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    course_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EnrollmentStatus.ENROLLED.value
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("idx_enrollment_tenant_user", "tenant_id", "user_id"),
        Index("idx_enrollment_user_status", "tenant_id", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Enrollment(id={self.enrollment_id}, user={self.user_id}, status={self.status})>"


class QuizAttempt(Base):
    """A completed attempt at a course quiz."""

    __tablename__ = "quiz_attempts"

    attempt_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    quiz_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)  # 0-100
    is_passing: Mapped[bool] = mapped_column(Boolean, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("idx_quiz_attempt_user_completed", "tenant_id", "user_id", "completed_at"),
    )

    def __repr__(self) -> str:
        return f"<QuizAttempt(id={self.attempt_id}, score={self.score}, passing={self.is_passing})>"
