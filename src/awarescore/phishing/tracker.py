"""Phishing Campaign Tracker for launching simulations and recording responses.

This module provides the PhishingCampaignTracker that:
1. Launches campaigns against explicit users, departments or a whole tenant
2. Records user actions (opened/clicked/reported/deleted) on delivered emails
3. Derives campaign, user, tenant and department level statistics
4. Recommends the difficulty of the next simulation for a user
"""

import secrets
import string
import time
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from awarescore.core.context import get_current_context_or_none
from awarescore.core.exceptions import ConflictError, NotFoundError
from awarescore.core.logging import get_logger
from awarescore.db.models.phishing import PhishingEvent
from awarescore.db.repositories.directory import DirectoryRepository
from awarescore.db.repositories.phishing import PhishingEventRepository
from awarescore.messaging.events import EventPublisher, EventTopic
from awarescore.observability.metrics import record_campaign_created, record_phishing_action
from awarescore.phishing.statistics import (
    aggregate_by_user,
    build_user_history,
    compare_departments,
    difficulty_breakdown,
    percentage,
    rank_best_performers,
    rank_vulnerable,
    recommend_difficulty,
    summarize_campaign,
)
from awarescore.phishing.types import (
    CampaignLaunch,
    CampaignRequest,
    CampaignStats,
    DepartmentPhishingStats,
    EventMetadata,
    PhishingAction,
    RecordEventRequest,
    TemplateRecommendations,
    TenantPhishingStats,
    UserPhishingHistory,
    UserPhishingPerformance,
)

logger = get_logger(__name__)

CAMPAIGN_ID_PREFIX = "PHISH"
# Optimistic writes retried when another recording lands first
MAX_WRITE_ATTEMPTS = 10
_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lower-case base 36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_campaign_id(now_ms: int | None = None) -> str:
    """Generate a campaign id of the form ``PHISH-<base36 ms>-<6 random>``.

    Args:
        now_ms: Millisecond timestamp to encode (defaults to the current time).

    Returns:
        Upper-cased campaign id.
    """
    timestamp = to_base36(now_ms if now_ms is not None else time.time_ns() // 1_000_000)
    random_part = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(6))
    return f"{CAMPAIGN_ID_PREFIX}-{timestamp}-{random_part}".upper()


class PhishingCampaignTracker:
    """Creates phishing simulation campaigns and tracks user responses.

    Example:
        ```python
        tracker = PhishingCampaignTracker(session, publisher)

        launch = await tracker.create_campaign(request, created_by=admin_id)
        await tracker.record_event(
            tenant_id,
            RecordEventRequest(
                user_id=user_id,
                campaign_id=launch.campaign_id,
                action=PhishingAction.CLICKED,
            ),
        )
        stats = await tracker.get_campaign_stats(tenant_id, launch.campaign_id)
        ```
    """

    def __init__(self, db: AsyncSession, publisher: EventPublisher):
        """Initialize the tracker.

        Args:
            db: Async SQLAlchemy session.
            publisher: Destination for simulation notifications.
        """
        self.db = db
        self.publisher = publisher
        self.events = PhishingEventRepository(db)
        self.directory = DirectoryRepository(db)

    # =========================================================================
    # Campaigns
    # =========================================================================

    async def resolve_targets(self, request: CampaignRequest) -> list[UUID]:
        """Resolve the users a campaign is sent to.

        Explicit users and department members are combined; only when both
        are empty is the whole tenant targeted. Duplicates are removed,
        keeping first-seen order.
        """
        targets = list(request.target_user_ids)

        if request.target_department_ids:
            targets.extend(
                await self.directory.list_user_ids_in_departments(
                    request.tenant_id, request.target_department_ids
                )
            )

        if not targets:
            targets = await self.directory.list_user_ids(request.tenant_id)

        return list(dict.fromkeys(targets))

    async def create_campaign(
        self,
        request: CampaignRequest,
        created_by: UUID | None = None,
    ) -> CampaignLaunch:
        """Launch a phishing simulation campaign.

        Args:
            request: Campaign parameters.
            created_by: Administrator launching the campaign (defaults to the
                actor of the current request context).

        Returns:
            CampaignLaunch with the campaign id, target count and send time.
        """
        if created_by is None:
            ctx = get_current_context_or_none()
            created_by = ctx.actor_id if ctx is not None else None

        target_user_ids = await self.resolve_targets(request)
        campaign_id = generate_campaign_id()
        sent_at = request.scheduled_for or datetime.now(UTC)

        metadata = EventMetadata(
            difficulty=request.difficulty,
            red_flags=request.red_flags,
            template=request.email_template,
        ).to_storage()

        events = [
            PhishingEvent(
                tenant_id=request.tenant_id,
                user_id=user_id,
                campaign_id=campaign_id,
                subject=request.subject,
                sent_at=sent_at,
                clicked=False,
                reported=False,
                event_metadata=dict(metadata),
            )
            for user_id in target_user_ids
        ]
        if events:
            await self.events.create_many(events)

        logger.info(
            "campaign_created",
            campaign_id=campaign_id,
            campaign_name=request.name,
            tenant_id=str(request.tenant_id),
            target_count=len(target_user_ids),
            difficulty=request.difficulty.value,
        )
        record_campaign_created(request.difficulty.value, len(target_user_ids))

        await self.publisher.publish(
            EventTopic.SIMULATION_STARTED,
            {
                "campaign_id": campaign_id,
                "tenant_id": str(request.tenant_id),
                "target_count": len(target_user_ids),
                "difficulty": request.difficulty.value,
                "created_by": str(created_by) if created_by else None,
            },
        )

        return CampaignLaunch(
            campaign_id=campaign_id,
            target_count=len(target_user_ids),
            scheduled_for=sent_at,
        )

    # =========================================================================
    # Event Recording
    # =========================================================================

    async def record_event(self, tenant_id: UUID, request: RecordEventRequest) -> PhishingEvent:
        """Record a user action on the email they received in a campaign.

        CLICKED and REPORTED flip their flag once and merge the supplied
        metadata into the event's metadata as-is. Any other action is stored
        as a timestamped entry under its lower-cased name.

        Args:
            tenant_id: Tenant owning the campaign.
            request: The action to record.

        Returns:
            The updated event.

        Raises:
            NotFoundError: If the user was not targeted by the campaign.
            ConflictError: If the click or report was already recorded, or
                concurrent writes to the event kept winning the race.
        """
        event = await self.events.get_for_target(tenant_id, request.user_id, request.campaign_id)
        if event is None:
            raise NotFoundError(
                "phishing_event",
                f"{request.campaign_id}/{request.user_id}",
                message="Phishing event not found",
            )

        # Action times never precede delivery
        now = max(datetime.now(UTC), event.sent_at)

        for _ in range(MAX_WRITE_ATTEMPTS):
            if await self._apply_action(event, request, now):
                break
            # Lost a race with another write; re-read and merge again
            event = await self.events.reload(event)
        else:
            raise ConflictError("phishing_event", event.event_id, request.action)

        event = await self.events.reload(event)

        logger.info(
            "phishing_event_recorded",
            action=request.action,
            user_id=str(request.user_id),
            campaign_id=request.campaign_id,
            tenant_id=str(tenant_id),
        )
        record_phishing_action(request.action)

        await self._publish_recorded(tenant_id, event, request)
        return event

    async def _apply_action(
        self,
        event: PhishingEvent,
        request: RecordEventRequest,
        now: datetime,
    ) -> bool:
        current = EventMetadata.from_storage(event.event_metadata)
        version = event.metadata_version

        if request.action == PhishingAction.CLICKED.value:
            if event.clicked:
                raise ConflictError("phishing_event", event.event_id, request.action)
            stored = current.merged(request.metadata).to_storage()
            return await self.events.mark_clicked(
                event.event_id, now, stored, expected_version=version
            )

        if request.action == PhishingAction.REPORTED.value:
            if event.reported:
                raise ConflictError("phishing_event", event.event_id, request.action)
            stored = current.merged(request.metadata).to_storage()
            return await self.events.mark_reported(
                event.event_id, now, stored, expected_version=version
            )

        stored = current.with_action(request.action.lower(), now, request.metadata).to_storage()
        return await self.events.update_metadata(event.event_id, stored, expected_version=version)

    async def _publish_recorded(
        self,
        tenant_id: UUID,
        event: PhishingEvent,
        request: RecordEventRequest,
    ) -> None:
        base: dict[str, Any] = {
            "user_id": str(request.user_id),
            "campaign_id": request.campaign_id,
            "tenant_id": str(tenant_id),
        }
        await self.publisher.publish(
            EventTopic.EVENT_RECORDED,
            {"event_id": str(event.event_id), "action": request.action, **base},
        )

        if request.action == PhishingAction.CLICKED.value:
            await self.publisher.publish(EventTopic.PHISHING_CLICKED, base)
        elif request.action == PhishingAction.REPORTED.value:
            await self.publisher.publish(EventTopic.PHISHING_REPORTED, base)

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_campaign_stats(self, tenant_id: UUID, campaign_id: str) -> CampaignStats:
        """Get aggregate statistics for a campaign.

        Raises:
            NotFoundError: If the campaign has no events.
        """
        events = await self.events.list_for_campaign(tenant_id, campaign_id)
        if not events:
            raise NotFoundError("campaign", campaign_id, message="Campaign not found")
        return summarize_campaign(campaign_id, events)

    async def get_user_phishing_history(
        self,
        tenant_id: UUID,
        user_id: UUID,
    ) -> UserPhishingHistory:
        """Get a user's phishing events, newest first, with rates."""
        events = await self.events.list_for_user(tenant_id, user_id)
        return build_user_history(events)

    async def get_tenant_phishing_stats(
        self,
        tenant_id: UUID,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> TenantPhishingStats:
        """Get tenant-wide counts and rates for events sent within a window."""
        window = {"start": start_date, "end": end_date}
        total = await self.events.count_for_tenant(tenant_id, **window)
        clicked = await self.events.count_for_tenant(tenant_id, clicked=True, **window)
        reported = await self.events.count_for_tenant(tenant_id, reported=True, **window)
        campaigns = await self.events.count_campaigns(tenant_id, **window)

        return TenantPhishingStats(
            total_simulations=total,
            total_campaigns=campaigns,
            clicked=clicked,
            reported=reported,
            click_rate=percentage(clicked, total),
            report_rate=percentage(reported, total),
            start_date=start_date,
            end_date=end_date,
        )

    async def get_vulnerable_users(
        self,
        tenant_id: UUID,
        limit: int = 10,
    ) -> list[UserPhishingPerformance]:
        """Get the users with the highest click rates."""
        rows = await self.events.list_with_users(tenant_id)
        return rank_vulnerable(aggregate_by_user(rows), limit)

    async def get_best_performers(
        self,
        tenant_id: UUID,
        limit: int = 10,
    ) -> list[UserPhishingPerformance]:
        """Get the users who report the most and click the least."""
        rows = await self.events.list_with_users(tenant_id)
        return rank_best_performers(aggregate_by_user(rows), limit)

    async def get_department_comparison(self, tenant_id: UUID) -> list[DepartmentPhishingStats]:
        """Get phishing totals and rates per department."""
        rows = await self.events.list_with_users(tenant_id)
        return compare_departments(rows)

    async def get_template_recommendations(
        self,
        tenant_id: UUID,
        user_id: UUID,
    ) -> TemplateRecommendations:
        """Recommend the difficulty of the next simulation for a user."""
        history = await self.get_user_phishing_history(tenant_id, user_id)

        return TemplateRecommendations(
            click_rate=history.click_rate,
            report_rate=history.report_rate,
            total_simulations=history.total_received,
            recommendations=[recommend_difficulty(history.click_rate, history.report_rate)],
            difficulty_breakdown=difficulty_breakdown(history),
        )
