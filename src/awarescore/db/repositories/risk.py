"""Risk score history repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from awarescore.db.models.risk import RiskScoreRecord
from awarescore.db.repositories.base import BaseRepository


class RiskScoreRepository(BaseRepository[RiskScoreRecord, UUID]):
    """Repository for the append-only risk score history."""

    model = RiskScoreRecord

    async def history(
        self,
        tenant_id: UUID,
        user_id: UUID,
        *,
        limit: int = 10,
    ) -> list[RiskScoreRecord]:
        """Get a user's snapshots, most recent first."""
        stmt = (
            select(RiskScoreRecord)
            .where(RiskScoreRecord.tenant_id == tenant_id, RiskScoreRecord.user_id == user_id)
            .order_by(RiskScoreRecord.calculated_at.desc(), RiskScoreRecord.score_id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def latest_for_user(self, tenant_id: UUID, user_id: UUID) -> RiskScoreRecord | None:
        """Get a user's most recent snapshot."""
        records = await self.history(tenant_id, user_id, limit=1)
        return records[0] if records else None

    async def latest_per_user(self, tenant_id: UUID) -> dict[UUID, RiskScoreRecord]:
        """Get the most recent snapshot of every scored user in a tenant."""
        stmt = (
            select(RiskScoreRecord)
            .where(RiskScoreRecord.tenant_id == tenant_id)
            .order_by(RiskScoreRecord.calculated_at.desc())
        )
        result = await self.db.execute(stmt)

        latest: dict[UUID, RiskScoreRecord] = {}
        for record in result.scalars().all():
            current = latest.get(record.user_id)
            if current is None or record.calculated_at > current.calculated_at:
                latest[record.user_id] = record
        return latest

    async def list_chronological(
        self,
        tenant_id: UUID,
        *,
        user_id: UUID | None = None,
        since: datetime | None = None,
    ) -> list[RiskScoreRecord]:
        """Get snapshots oldest first, optionally for one user and after a point in time."""
        stmt = select(RiskScoreRecord).where(RiskScoreRecord.tenant_id == tenant_id)
        if user_id is not None:
            stmt = stmt.where(RiskScoreRecord.user_id == user_id)
        if since is not None:
            stmt = stmt.where(RiskScoreRecord.calculated_at >= since)
        stmt = stmt.order_by(RiskScoreRecord.calculated_at.asc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
