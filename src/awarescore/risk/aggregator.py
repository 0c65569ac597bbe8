"""Risk Aggregator for combining factor sub-scores into a user risk score.

This module provides the RiskAggregator that:
1. Runs the six factor calculators for a user concurrently
2. Weights them into an overall score (0-100, higher = lower risk)
3. Classifies the risk level and generates recommendations
4. Appends the result to the risk score history and publishes it
5. Re-scores every user of a tenant with bounded concurrency
"""

import asyncio
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from awarescore.config.settings import RiskWeights, get_settings
from awarescore.core.logging import LogContext, get_logger, log_user_failure
from awarescore.db.config import SessionFactory
from awarescore.db.models.risk import RiskScoreRecord
from awarescore.db.repositories.directory import DirectoryRepository
from awarescore.db.repositories.risk import RiskScoreRepository
from awarescore.messaging.events import EventPublisher, EventTopic, InMemoryEventBus
from awarescore.observability.metrics import (
    observe_bulk_scoring,
    observe_risk_score,
    record_risk_score_failure,
)
from awarescore.risk.factors import FactorCalculators, clamp_score
from awarescore.risk.types import (
    BulkScoringSummary,
    RiskLevel,
    RiskScoreComponents,
    RiskScoreResult,
)
from awarescore.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Level thresholds on the overall score
LOW_RISK_THRESHOLD = 80.0
MEDIUM_RISK_THRESHOLD = 60.0
HIGH_RISK_THRESHOLD = 40.0

# Sub-score thresholds below which recommendations are added
PHISHING_RECOMMENDATION_THRESHOLD = 60.0
COMPLETION_RECOMMENDATION_THRESHOLD = 70.0
RECENCY_RECOMMENDATION_THRESHOLD = 50.0
QUIZ_RECOMMENDATION_THRESHOLD = 70.0
INCIDENT_RECOMMENDATION_THRESHOLD = 80.0
LOGIN_RECOMMENDATION_THRESHOLD = 70.0

CRITICAL_RECOMMENDATIONS = [
    "⚠️ CRITICAL: Immediate security training required",
    "Schedule meeting with Information Security Officer",
]

POSITIVE_RECOMMENDATIONS = [
    "✓ Excellent security posture - keep up the good work!",
    "Continue annual training to maintain low risk level",
]


def determine_risk_level(overall_score: float) -> RiskLevel:
    """Classify an overall score.

    Args:
        overall_score: Score in [0, 100], higher = lower risk.

    Returns:
        LOW at 80 and above, MEDIUM at 60, HIGH at 40, CRITICAL below.
    """
    if overall_score >= LOW_RISK_THRESHOLD:
        return RiskLevel.LOW
    if overall_score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    if overall_score >= HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def calculate_overall_score(components: RiskScoreComponents, weights: RiskWeights) -> float:
    """Weighted sum of the sub-scores, clamped to [0, 100]."""
    return clamp_score(
        components.phishing * weights.phishing
        + components.training_completion * weights.training_completion
        + components.training_recency * weights.training_recency
        + components.quiz_performance * weights.quiz_performance
        + components.security_incident * weights.security_incidents
        + components.login_anomaly * weights.login_anomalies
    )


def generate_recommendations(components: RiskScoreComponents, level: RiskLevel) -> list[str]:
    """Build ordered guidance from weak sub-scores.

    Each weak factor contributes its own fixed strings. CRITICAL users get
    two urgent entries first. When no factor is weak, positive
    reinforcement is returned instead.
    """
    recommendations: list[str] = []

    if components.phishing < PHISHING_RECOMMENDATION_THRESHOLD:
        recommendations.append("Complete additional phishing awareness training")
        recommendations.append("Review email security best practices from Chapter 3")

    if components.training_completion < COMPLETION_RECOMMENDATION_THRESHOLD:
        recommendations.append("Complete pending cybersecurity training courses")
        recommendations.append("Aim for 100% training completion to reduce risk")

    if components.training_recency < RECENCY_RECOMMENDATION_THRESHOLD:
        recommendations.append("Training is overdue - enroll in refresher courses")
        recommendations.append("Schedule annual cybersecurity awareness training")

    if components.quiz_performance < QUIZ_RECOMMENDATION_THRESHOLD:
        recommendations.append("Review quiz materials and retake assessments")
        recommendations.append("Focus on areas where quiz scores are lowest")

    if components.security_incident < INCIDENT_RECOMMENDATION_THRESHOLD:
        recommendations.append("Review recent security incidents and lessons learned")
        recommendations.append("Meet with security team to discuss incident prevention")

    if components.login_anomaly < LOGIN_RECOMMENDATION_THRESHOLD:
        recommendations.append("Review login activity for unauthorized access")
        recommendations.append("Enable multi-factor authentication if not already active")
        recommendations.append("Ensure you're following login best practices")

    if level == RiskLevel.CRITICAL:
        recommendations = CRITICAL_RECOMMENDATIONS + recommendations

    if not recommendations:
        return list(POSITIVE_RECOMMENDATIONS)

    return recommendations


class RiskAggregator:
    """Computes, stores and publishes user risk scores.

    Example:
        ```python
        aggregator = create_risk_aggregator(session_factory, bus)

        result = await aggregator.calculate_user_risk_score(tenant_id, user_id)
        print(f"{result.overall_score} ({result.risk_level.value})")

        summary = await aggregator.bulk_calculate_risk_scores(tenant_id)
        print(f"{summary.succeeded}/{summary.attempted} users scored")
        ```
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        publisher: EventPublisher,
        weights: RiskWeights | None = None,
        calculators: FactorCalculators | None = None,
        concurrency: int | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            session_factory: Factory for database sessions.
            publisher: Destination for risk score notifications.
            weights: Factor weights (default from settings).
            calculators: Factor calculators (default built on session_factory).
            concurrency: Users scored at once during bulk runs (default from settings).

        Raises:
            ConfigurationError: If concurrency is below 1.
        """
        settings = get_settings()
        self.session_factory = session_factory
        self.publisher = publisher
        self.weights = weights or settings.risk_weights
        self.calculators = calculators or FactorCalculators(session_factory)
        self.concurrency = (
            concurrency if concurrency is not None else settings.bulk_scoring_concurrency
        )
        if self.concurrency < 1:
            raise ConfigurationError(
                f"Bulk scoring concurrency must be at least 1, got {self.concurrency}"
            )

    async def calculate_user_risk_score(self, tenant_id: UUID, user_id: UUID) -> RiskScoreResult:
        """Compute and persist a new risk score for a user.

        Every call appends a new history row; earlier rows are never changed.

        Args:
            tenant_id: Tenant of the user.
            user_id: User to score.

        Returns:
            RiskScoreResult with rounded sub-scores and overall score.
        """
        components = await self.calculators.calculate_all(tenant_id, user_id)
        overall = calculate_overall_score(components, self.weights)
        level = determine_risk_level(overall)
        recommendations = generate_recommendations(components, level)

        calculated_at = datetime.now(UTC)

        # History rows keep full precision; only the returned result is rounded
        record = self._to_record(
            tenant_id, user_id, components, overall, level, recommendations, calculated_at
        )
        async with self.session_factory() as session:
            await RiskScoreRepository(session).create(record)

        result = RiskScoreResult(
            user_id=user_id,
            tenant_id=tenant_id,
            components=components.rounded(),
            overall_score=round(overall, 2),
            risk_level=level,
            recommendations=recommendations,
            calculated_at=calculated_at,
        )

        logger.info(
            "risk_score_calculated",
            tenant_id=str(tenant_id),
            user_id=str(user_id),
            overall_score=result.overall_score,
            risk_level=level.value,
        )
        observe_risk_score(result.overall_score, level.value)

        await self.publisher.publish(
            EventTopic.RISK_SCORE_UPDATED,
            {
                "tenant_id": str(tenant_id),
                "user_id": str(user_id),
                "overall_score": result.overall_score,
                "risk_level": level.value,
                "calculated_at": result.calculated_at.isoformat(),
            },
        )

        return result

    async def bulk_calculate_risk_scores(self, tenant_id: UUID) -> BulkScoringSummary:
        """Re-score every user of a tenant.

        Users are scored with at most ``concurrency`` in flight. A failure for
        one user is logged and counted; it does not stop the run.

        Args:
            tenant_id: Tenant whose users to score.

        Returns:
            BulkScoringSummary with attempt, success and failure counts.
        """
        async with self.session_factory() as session:
            user_ids = await DirectoryRepository(session).list_user_ids(tenant_id)

        summary = BulkScoringSummary(attempted=len(user_ids))
        semaphore = asyncio.Semaphore(self.concurrency)

        async def score_one(user_id: UUID) -> bool:
            async with semaphore:
                try:
                    await self.calculate_user_risk_score(tenant_id, user_id)
                    return True
                except Exception as e:
                    log_user_failure(
                        logger, "risk_score_failed", e, tenant_id=tenant_id, user_id=user_id
                    )
                    record_risk_score_failure()
                    return False

        with LogContext(bulk_tenant_id=str(tenant_id)), observe_bulk_scoring():
            outcomes = await asyncio.gather(*(score_one(user_id) for user_id in user_ids))

        for user_id, succeeded in zip(user_ids, outcomes, strict=True):
            if succeeded:
                summary.succeeded += 1
            else:
                summary.failed_user_ids.append(user_id)

        logger.info(
            "bulk_risk_scoring_completed",
            tenant_id=str(tenant_id),
            attempted=summary.attempted,
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    async def handle_phishing_action(self, payload: dict[str, Any]) -> None:
        """Re-score the user named in a phishing click or report notification."""
        await self.calculate_user_risk_score(
            UUID(str(payload["tenant_id"])),
            UUID(str(payload["user_id"])),
        )

    @staticmethod
    def _to_record(
        tenant_id: UUID,
        user_id: UUID,
        components: RiskScoreComponents,
        overall: float,
        level: RiskLevel,
        recommendations: list[str],
        calculated_at: datetime,
    ) -> RiskScoreRecord:
        return RiskScoreRecord(
            tenant_id=tenant_id,
            user_id=user_id,
            phishing_score=components.phishing,
            training_completion_score=components.training_completion,
            training_recency_score=components.training_recency,
            quiz_performance_score=components.quiz_performance,
            security_incident_score=components.security_incident,
            login_anomaly_score=components.login_anomaly,
            overall_score=overall,
            risk_level=level.value,
            recommendations=list(recommendations),
            calculated_at=calculated_at,
        )


def register_risk_listeners(bus: InMemoryEventBus, aggregator: RiskAggregator) -> None:
    """Re-score users whenever they click or report a phishing simulation.

    Args:
        bus: Event bus the phishing tracker publishes to.
        aggregator: Aggregator performing the re-score.
    """
    bus.subscribe(EventTopic.PHISHING_CLICKED, aggregator.handle_phishing_action)
    bus.subscribe(EventTopic.PHISHING_REPORTED, aggregator.handle_phishing_action)


def create_risk_aggregator(
    session_factory: SessionFactory,
    publisher: EventPublisher,
    weights: RiskWeights | None = None,
) -> RiskAggregator:
    """Create a risk aggregator.

    Args:
        session_factory: Factory for database sessions.
        publisher: Destination for risk score notifications.
        weights: Optional factor weights.

    Returns:
        Configured RiskAggregator.
    """
    return RiskAggregator(session_factory, publisher, weights=weights)
