"""Pure aggregation over phishing events.

Everything here works on already-fetched rows so it can be tested without
a database. Rankings break ties by user id so results are reproducible.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from uuid import UUID

from awarescore.db.models.directory import User
from awarescore.db.models.phishing import PhishingEvent
from awarescore.phishing.types import (
    UNASSIGNED_DEPARTMENT_ID,
    UNASSIGNED_DEPARTMENT_NAME,
    CampaignStats,
    DepartmentPhishingStats,
    Difficulty,
    DifficultyPerformance,
    EventMetadata,
    PhishingEventSummary,
    TemplateRecommendation,
    UserDisplay,
    UserPhishingHistory,
    UserPhishingPerformance,
)


def percentage(part: int, whole: int) -> float:
    """Return ``part`` as a percentage of ``whole``, 0 when ``whole`` is 0."""
    if whole == 0:
        return 0.0
    return part / whole * 100


def _average_minutes(pairs: Iterable[tuple[datetime, datetime]]) -> float | None:
    minutes = [(action_at - sent_at).total_seconds() / 60 for sent_at, action_at in pairs]
    if not minutes:
        return None
    return sum(minutes) / len(minutes)


def summarize_campaign(campaign_id: str, events: Sequence[PhishingEvent]) -> CampaignStats:
    """Compute send/open/click/report counts, rates and response times.

    Args:
        campaign_id: Campaign the events belong to.
        events: Every event of the campaign.

    Returns:
        CampaignStats for the campaign.
    """
    total_sent = len(events)
    clicked = sum(1 for e in events if e.clicked)
    reported = sum(1 for e in events if e.reported)
    opened = sum(1 for e in events if EventMetadata.from_storage(e.event_metadata).was_opened)

    return CampaignStats(
        campaign_id=campaign_id,
        total_sent=total_sent,
        opened=opened,
        clicked=clicked,
        reported=reported,
        click_rate=percentage(clicked, total_sent),
        report_rate=percentage(reported, total_sent),
        open_rate=percentage(opened, total_sent),
        average_time_to_click=_average_minutes(
            (e.sent_at, e.clicked_at) for e in events if e.clicked and e.clicked_at
        ),
        average_time_to_report=_average_minutes(
            (e.sent_at, e.reported_at) for e in events if e.reported and e.reported_at
        ),
    )


def build_user_history(events: Sequence[PhishingEvent]) -> UserPhishingHistory:
    """Summarize one user's events, newest first."""
    ordered = sorted(events, key=lambda e: e.sent_at, reverse=True)
    total = len(ordered)
    clicked = sum(1 for e in ordered if e.clicked)
    reported = sum(1 for e in ordered if e.reported)

    return UserPhishingHistory(
        total_received=total,
        clicked=clicked,
        reported=reported,
        click_rate=percentage(clicked, total),
        report_rate=percentage(reported, total),
        events=[
            PhishingEventSummary(
                event_id=e.event_id,
                campaign_id=e.campaign_id,
                subject=e.subject,
                sent_at=e.sent_at,
                clicked=e.clicked,
                clicked_at=e.clicked_at,
                reported=e.reported,
                reported_at=e.reported_at,
                difficulty=EventMetadata.from_storage(e.event_metadata).difficulty,
            )
            for e in ordered
        ],
    )


def user_display(user: User) -> UserDisplay:
    """Build the report label for a directory user."""
    return UserDisplay(
        user_id=user.user_id,
        name=user.display_name,
        email=user.email,
        department_id=user.department_id,
        department_name=user.department.name if user.department else None,
    )


def aggregate_by_user(
    rows: Iterable[tuple[PhishingEvent, User | None]],
) -> list[UserPhishingPerformance]:
    """Group events by targeted user and compute per-user totals and rates."""
    by_user: dict[UUID, UserPhishingPerformance] = {}

    for event, user in rows:
        perf = by_user.get(event.user_id)
        if perf is None:
            perf = UserPhishingPerformance(
                user_id=event.user_id,
                user=user_display(user) if user is not None else None,
            )
            by_user[event.user_id] = perf

        perf.total_received += 1
        if event.clicked:
            perf.clicked += 1
        if event.reported:
            perf.reported += 1

    for perf in by_user.values():
        perf.click_rate = percentage(perf.clicked, perf.total_received)
        perf.report_rate = percentage(perf.reported, perf.total_received)
        perf.score = perf.reported * 2 - perf.clicked

    return list(by_user.values())


def rank_vulnerable(
    performances: Iterable[UserPhishingPerformance],
    limit: int = 10,
) -> list[UserPhishingPerformance]:
    """Users with the highest click rate first."""
    ranked = sorted(performances, key=lambda p: (-p.click_rate, str(p.user_id)))
    return ranked[:limit]


def rank_best_performers(
    performances: Iterable[UserPhishingPerformance],
    limit: int = 10,
) -> list[UserPhishingPerformance]:
    """Users with the highest ``reported * 2 - clicked`` score first."""
    ranked = sorted(performances, key=lambda p: (-p.score, str(p.user_id)))
    return ranked[:limit]


def compare_departments(
    rows: Iterable[tuple[PhishingEvent, User | None]],
) -> list[DepartmentPhishingStats]:
    """Group events by the targeted user's department.

    Users without a department (or missing from the directory) are counted
    under the ``unassigned`` bucket. Results are ordered by department name.
    """
    by_department: dict[str, DepartmentPhishingStats] = {}

    for event, user in rows:
        if user is not None and user.department_id is not None:
            department_id = str(user.department_id)
            department_name = user.department.name if user.department else department_id
        else:
            department_id = UNASSIGNED_DEPARTMENT_ID
            department_name = UNASSIGNED_DEPARTMENT_NAME

        stats = by_department.get(department_id)
        if stats is None:
            stats = DepartmentPhishingStats(
                department_id=department_id,
                department_name=department_name,
            )
            by_department[department_id] = stats

        stats.total_received += 1
        if event.clicked:
            stats.clicked += 1
        if event.reported:
            stats.reported += 1

    for stats in by_department.values():
        stats.click_rate = percentage(stats.clicked, stats.total_received)
        stats.report_rate = percentage(stats.reported, stats.total_received)

    return sorted(by_department.values(), key=lambda s: (s.department_name, s.department_id))


def recommend_difficulty(click_rate: float, report_rate: float) -> TemplateRecommendation:
    """Pick the difficulty of the next simulation from a user's rates.

    Exactly one rule applies, checked from hardest to easiest.
    """
    if click_rate < 10 and report_rate > 70:
        return TemplateRecommendation(
            difficulty=Difficulty.EXPERT,
            reason="User demonstrates excellent awareness, ready for advanced scenarios",
        )
    if click_rate < 20 and report_rate > 50:
        return TemplateRecommendation(
            difficulty=Difficulty.HARD,
            reason="User shows good awareness, can handle more sophisticated attacks",
        )
    if click_rate > 50:
        return TemplateRecommendation(
            difficulty=Difficulty.EASY,
            reason="User needs more practice with basic phishing indicators",
        )
    return TemplateRecommendation(
        difficulty=Difficulty.MEDIUM,
        reason="User shows moderate awareness, continue with standard training",
    )


def difficulty_breakdown(
    history: UserPhishingHistory,
) -> dict[Difficulty, DifficultyPerformance]:
    """Count received and clicked emails per difficulty (MEDIUM when unknown)."""
    breakdown: dict[Difficulty, DifficultyPerformance] = {}
    for event in history.events:
        difficulty = event.difficulty or Difficulty.MEDIUM
        perf = breakdown.setdefault(difficulty, DifficultyPerformance())
        perf.total += 1
        if event.clicked:
            perf.clicked += 1
    return breakdown
