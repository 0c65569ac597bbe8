"""Phishing event repository."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import selectinload

from awarescore.db.models.directory import User
from awarescore.db.models.phishing import PhishingEvent
from awarescore.db.repositories.base import BaseRepository


class PhishingEventRepository(BaseRepository[PhishingEvent, UUID]):
    """Repository for PhishingEvent operations.

    Every write to an event is a conditional UPDATE on ``metadata_version``
    (and, for clicks and reports, on the flag being unset). Two concurrent
    recordings of the same action cannot both succeed, and a write based on
    a stale read of the metadata is refused instead of overwriting it.
    """

    model = PhishingEvent

    async def get_for_target(
        self,
        tenant_id: UUID,
        user_id: UUID,
        campaign_id: str,
    ) -> PhishingEvent | None:
        """Get the event delivered to a user within a campaign.

        Args:
            tenant_id: Tenant owning the campaign
            user_id: Targeted user
            campaign_id: Campaign identifier

        Returns:
            The event, or None if the user was not targeted
        """
        stmt = select(PhishingEvent).where(
            PhishingEvent.tenant_id == tenant_id,
            PhishingEvent.user_id == user_id,
            PhishingEvent.campaign_id == campaign_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _write_if_unchanged(
        self,
        event_id: UUID,
        expected_version: int,
        values: dict[Any, Any],
        *conditions: Any,
    ) -> bool:
        stmt = (
            update(PhishingEvent)
            .where(
                PhishingEvent.event_id == event_id,
                PhishingEvent.metadata_version == expected_version,
                *conditions,
            )
            .values({**values, PhishingEvent.metadata_version: expected_version + 1})
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount == 1

    async def mark_clicked(
        self,
        event_id: UUID,
        clicked_at: datetime,
        metadata: dict[str, Any],
        *,
        expected_version: int,
    ) -> bool:
        """Set the clicked flag if it is unset and the metadata is unchanged.

        Returns:
            True if this call flipped the flag, False if the flag was already
            set or another write bumped ``metadata_version`` first
        """
        return await self._write_if_unchanged(
            event_id,
            expected_version,
            {
                PhishingEvent.clicked: True,
                PhishingEvent.clicked_at: clicked_at,
                PhishingEvent.event_metadata: metadata,
            },
            PhishingEvent.clicked.is_(False),
        )

    async def mark_reported(
        self,
        event_id: UUID,
        reported_at: datetime,
        metadata: dict[str, Any],
        *,
        expected_version: int,
    ) -> bool:
        """Set the reported flag if it is unset and the metadata is unchanged.

        Returns:
            True if this call flipped the flag, False if the flag was already
            set or another write bumped ``metadata_version`` first
        """
        return await self._write_if_unchanged(
            event_id,
            expected_version,
            {
                PhishingEvent.reported: True,
                PhishingEvent.reported_at: reported_at,
                PhishingEvent.event_metadata: metadata,
            },
            PhishingEvent.reported.is_(False),
        )

    async def update_metadata(
        self,
        event_id: UUID,
        metadata: dict[str, Any],
        *,
        expected_version: int,
    ) -> bool:
        """Replace the metadata of an event unless another write got there first."""
        return await self._write_if_unchanged(
            event_id, expected_version, {PhishingEvent.event_metadata: metadata}
        )

    async def reload(self, event: PhishingEvent) -> PhishingEvent:
        """Re-read an event after a statement-level update."""
        await self.db.refresh(event)
        return event

    async def list_for_campaign(self, tenant_id: UUID, campaign_id: str) -> list[PhishingEvent]:
        """Get all events of a campaign."""
        stmt = select(PhishingEvent).where(
            PhishingEvent.tenant_id == tenant_id,
            PhishingEvent.campaign_id == campaign_id,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(
        self,
        tenant_id: UUID,
        user_id: UUID,
        *,
        limit: int | None = None,
    ) -> list[PhishingEvent]:
        """Get a user's events, newest first.

        Args:
            tenant_id: Tenant scope
            user_id: User whose events to fetch
            limit: Maximum events to return (all when None)
        """
        stmt = (
            select(PhishingEvent)
            .where(PhishingEvent.tenant_id == tenant_id, PhishingEvent.user_id == user_id)
            .order_by(PhishingEvent.sent_at.desc(), PhishingEvent.event_id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_with_users(self, tenant_id: UUID) -> list[tuple[PhishingEvent, User | None]]:
        """Get all tenant events joined with the targeted user's directory row."""
        stmt = (
            select(PhishingEvent, User)
            .outerjoin(User, User.user_id == PhishingEvent.user_id)
            .options(selectinload(User.department))
            .where(PhishingEvent.tenant_id == tenant_id)
        )
        result = await self.db.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def count_for_tenant(
        self,
        tenant_id: UUID,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        clicked: bool | None = None,
        reported: bool | None = None,
    ) -> int:
        """Count tenant events, optionally within a send window and by flag."""
        stmt = self._window(select(func.count(PhishingEvent.event_id)), tenant_id, start, end)
        if clicked is not None:
            stmt = stmt.where(PhishingEvent.clicked.is_(clicked))
        if reported is not None:
            stmt = stmt.where(PhishingEvent.reported.is_(reported))
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def count_campaigns(
        self,
        tenant_id: UUID,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        """Count distinct campaigns with at least one event in the window."""
        stmt = self._window(
            select(func.count(func.distinct(PhishingEvent.campaign_id))), tenant_id, start, end
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    @staticmethod
    def _window(
        stmt: Select,
        tenant_id: UUID,
        start: datetime | None,
        end: datetime | None,
    ) -> Select:
        stmt = stmt.where(PhishingEvent.tenant_id == tenant_id)
        if start is not None:
            stmt = stmt.where(PhishingEvent.sent_at >= start)
        if end is not None:
            stmt = stmt.where(PhishingEvent.sent_at <= end)
        return stmt
