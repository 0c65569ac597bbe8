"""Audit log and login session repositories."""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from awarescore.db.models.activity import AuditLog, LoginSession
from awarescore.db.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog, UUID]):
    """Repository for AuditLog queries used by risk scoring."""

    model = AuditLog

    async def count_actions(
        self,
        tenant_id: UUID,
        user_id: UUID,
        actions: Iterable[str],
        *,
        since: datetime,
    ) -> int:
        """Count a user's audit entries with one of the given actions since a point in time."""
        stmt = select(func.count(AuditLog.log_id)).where(
            AuditLog.tenant_id == tenant_id,
            AuditLog.user_id == user_id,
            AuditLog.action.in_(list(actions)),
            AuditLog.created_at >= since,
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0


class LoginSessionRepository(BaseRepository[LoginSession, UUID]):
    """Repository for LoginSession queries used by risk scoring."""

    model = LoginSession

    async def recent_for_user(
        self,
        tenant_id: UUID,
        user_id: UUID,
        *,
        limit: int = 50,
    ) -> list[LoginSession]:
        """Get a user's most recent sessions, newest first."""
        stmt = (
            select(LoginSession)
            .where(LoginSession.tenant_id == tenant_id, LoginSession.user_id == user_id)
            .order_by(LoginSession.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
