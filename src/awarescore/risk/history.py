"""Risk score history queries, rankings and trend prediction."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from awarescore.core.logging import get_logger
from awarescore.db.models.risk import RiskScoreRecord
from awarescore.db.repositories.directory import DirectoryRepository
from awarescore.db.repositories.risk import RiskScoreRepository
from awarescore.phishing.statistics import user_display
from awarescore.risk.aggregator import determine_risk_level
from awarescore.risk.factors import clamp_score
from awarescore.risk.types import (
    HighRiskUser,
    PredictionConfidence,
    RiskTrendPoint,
    RiskTrendPrediction,
    TenantRiskStats,
    TrendDirection,
)

logger = get_logger(__name__)

DEFAULT_HIGH_RISK_THRESHOLD = 40.0
PREDICTION_WINDOW = 30
MIN_PREDICTION_POINTS = 5
HIGH_CONFIDENCE_POINTS = 15


def predict_from_scores(
    user_id: UUID,
    scores: list[float],
    days_ahead: int,
) -> RiskTrendPrediction:
    """Extrapolate a score series linearly.

    Args:
        user_id: User the scores belong to.
        scores: Overall scores, newest first.
        days_ahead: How far ahead to project.

    Returns:
        RiskTrendPrediction; INSUFFICIENT_DATA with fewer than 5 scores.
    """
    n = len(scores)
    if n < MIN_PREDICTION_POINTS:
        return RiskTrendPrediction(
            user_id=user_id,
            days_ahead=days_ahead,
            trend=TrendDirection.INSUFFICIENT_DATA,
            confidence=PredictionConfidence.LOW,
            current_score=round(scores[0], 2) if scores else None,
            data_points=n,
        )

    average = sum(scores) / n
    change = scores[0] - scores[-1]
    predicted = clamp_score(average + change / n * days_ahead)

    return RiskTrendPrediction(
        user_id=user_id,
        days_ahead=days_ahead,
        trend=TrendDirection.INCREASING if change > 0 else TrendDirection.DECREASING,
        confidence=(
            PredictionConfidence.HIGH if n > HIGH_CONFIDENCE_POINTS else PredictionConfidence.MEDIUM
        ),
        current_score=round(scores[0], 2),
        predicted_score=round(predicted, 2),
        data_points=n,
    )


class RiskHistoryStore:
    """Read side of the append-only risk score history.

    Example:
        ```python
        store = RiskHistoryStore(session)
        at_risk = await store.get_high_risk_users(tenant_id, threshold=40, limit=20)
        stats = await store.get_tenant_risk_stats(tenant_id)
        ```
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.scores = RiskScoreRepository(db)
        self.directory = DirectoryRepository(db)

    async def get_user_risk_score_history(
        self,
        tenant_id: UUID,
        user_id: UUID,
        limit: int = 10,
    ) -> list[RiskScoreRecord]:
        """Get a user's risk score snapshots, most recent first."""
        return await self.scores.history(tenant_id, user_id, limit=limit)

    async def get_high_risk_users(
        self,
        tenant_id: UUID,
        threshold: float = DEFAULT_HIGH_RISK_THRESHOLD,
        limit: int = 50,
    ) -> list[HighRiskUser]:
        """Get users whose latest overall score is below a threshold.

        Only each user's most recent snapshot is considered, so a user who
        has since improved is not reported.

        Args:
            tenant_id: Tenant to report on.
            threshold: Scores strictly below this are reported.
            limit: Maximum users to return.

        Returns:
            Users ordered by ascending score (riskiest first), ties by user id.
        """
        latest = await self.scores.latest_per_user(tenant_id)
        at_risk = sorted(
            (r for r in latest.values() if r.overall_score < threshold),
            key=lambda r: (r.overall_score, str(r.user_id)),
        )[:limit]

        users = await self.directory.get_users(tenant_id, [r.user_id for r in at_risk])

        return [
            HighRiskUser(
                user_id=record.user_id,
                overall_score=round(record.overall_score, 2),
                risk_level=determine_risk_level(record.overall_score),
                calculated_at=record.calculated_at,
                user=user_display(users[record.user_id]) if record.user_id in users else None,
            )
            for record in at_risk
        ]

    async def get_tenant_risk_stats(self, tenant_id: UUID) -> TenantRiskStats:
        """Summarize the latest score of every user in a tenant.

        Returns:
            TenantRiskStats; counts and average are zero when nobody was scored.
        """
        total_users = len(await self.directory.list_user_ids(tenant_id))
        latest = await self.scores.latest_per_user(tenant_id)

        stats = TenantRiskStats(total_users=total_users, users_assessed=len(latest))
        if not latest:
            return stats

        for record in latest.values():
            stats.level_counts[determine_risk_level(record.overall_score)] += 1

        stats.average_score = round(
            sum(r.overall_score for r in latest.values()) / len(latest), 2
        )
        return stats

    async def get_risk_trends(
        self,
        tenant_id: UUID,
        user_id: UUID | None = None,
        since: datetime | None = None,
    ) -> list[RiskTrendPoint]:
        """Get historical scores oldest first, for one user or the whole tenant."""
        records = await self.scores.list_chronological(tenant_id, user_id=user_id, since=since)
        return [
            RiskTrendPoint(
                user_id=r.user_id,
                score=round(r.overall_score, 2),
                risk_level=determine_risk_level(r.overall_score),
                calculated_at=r.calculated_at,
            )
            for r in records
        ]

    async def predict_risk_trend(
        self,
        tenant_id: UUID,
        user_id: UUID,
        days_ahead: int = 30,
    ) -> RiskTrendPrediction:
        """Project a user's score from their 30 most recent snapshots."""
        records = await self.scores.history(tenant_id, user_id, limit=PREDICTION_WINDOW)
        prediction = predict_from_scores(
            user_id, [r.overall_score for r in records], days_ahead
        )

        logger.debug(
            "risk_trend_predicted",
            tenant_id=str(tenant_id),
            user_id=str(user_id),
            trend=prediction.trend.value,
            data_points=prediction.data_points,
        )
        return prediction
