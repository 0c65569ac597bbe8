"""Training enrollment and quiz attempt repositories."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from awarescore.db.models.training import Enrollment, EnrollmentStatus, QuizAttempt
from awarescore.db.repositories.base import BaseRepository


class EnrollmentRepository(BaseRepository[Enrollment, UUID]):
    """Repository for Enrollment queries used by risk scoring."""

    model = Enrollment

    async def count_for_user(
        self,
        tenant_id: UUID,
        user_id: UUID,
        *,
        status: EnrollmentStatus | None = None,
    ) -> int:
        """Count a user's enrollments, optionally restricted to one status."""
        stmt = select(func.count(Enrollment.enrollment_id)).where(
            Enrollment.tenant_id == tenant_id, Enrollment.user_id == user_id
        )
        if status is not None:
            stmt = stmt.where(Enrollment.status == status.value)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def latest_completion(self, tenant_id: UUID, user_id: UUID) -> datetime | None:
        """Get the completion time of the user's most recently completed course."""
        stmt = (
            select(Enrollment.completed_at)
            .where(
                Enrollment.tenant_id == tenant_id,
                Enrollment.user_id == user_id,
                Enrollment.status == EnrollmentStatus.COMPLETED.value,
                Enrollment.completed_at.is_not(None),
            )
            .order_by(Enrollment.completed_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()


class QuizAttemptRepository(BaseRepository[QuizAttempt, UUID]):
    """Repository for QuizAttempt queries used by risk scoring."""

    model = QuizAttempt

    async def recent_for_user(
        self,
        tenant_id: UUID,
        user_id: UUID,
        *,
        limit: int = 10,
    ) -> list[QuizAttempt]:
        """Get a user's most recent quiz attempts, newest first."""
        stmt = (
            select(QuizAttempt)
            .where(QuizAttempt.tenant_id == tenant_id, QuizAttempt.user_id == user_id)
            .order_by(QuizAttempt.completed_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
