"""Phishing simulation campaigns and their statistics.

Usage:
    from awarescore.phishing import PhishingCampaignTracker, CampaignRequest, Difficulty

    tracker = PhishingCampaignTracker(session, publisher)
    launch = await tracker.create_campaign(
        CampaignRequest(
            tenant_id=tenant_id,
            name="Q3 invoice lure",
            subject="Overdue invoice",
            email_template="invoice_v2",
            difficulty=Difficulty.MEDIUM,
        )
    )
"""

from awarescore.phishing.tracker import (
    PhishingCampaignTracker,
    generate_campaign_id,
    to_base36,
)
from awarescore.phishing.types import (
    UNASSIGNED_DEPARTMENT_ID,
    UNASSIGNED_DEPARTMENT_NAME,
    ActionStamp,
    CampaignLaunch,
    CampaignRequest,
    CampaignStats,
    DepartmentPhishingStats,
    Difficulty,
    DifficultyPerformance,
    EventMetadata,
    PhishingAction,
    PhishingEventSummary,
    RecordEventRequest,
    TemplateRecommendation,
    TemplateRecommendations,
    TenantPhishingStats,
    UserDisplay,
    UserPhishingHistory,
    UserPhishingPerformance,
)

__all__ = [
    # Tracker
    "PhishingCampaignTracker",
    "generate_campaign_id",
    "to_base36",
    # Types
    "UNASSIGNED_DEPARTMENT_ID",
    "UNASSIGNED_DEPARTMENT_NAME",
    "ActionStamp",
    "CampaignLaunch",
    "CampaignRequest",
    "CampaignStats",
    "DepartmentPhishingStats",
    "Difficulty",
    "DifficultyPerformance",
    "EventMetadata",
    "PhishingAction",
    "PhishingEventSummary",
    "RecordEventRequest",
    "TemplateRecommendation",
    "TemplateRecommendations",
    "TenantPhishingStats",
    "UserDisplay",
    "UserPhishingHistory",
    "UserPhishingPerformance",
]
