"""Unit tests for the risk history store."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest

from awarescore.config.settings import RiskWeights
from awarescore.risk.aggregator import RiskAggregator
from awarescore.risk.factors import FactorCalculators
from awarescore.risk.history import RiskHistoryStore, predict_from_scores
from awarescore.risk.types import (
    PredictionConfidence,
    RiskLevel,
    RiskScoreComponents,
    TrendDirection,
)

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


class FixedCalculators(FactorCalculators):
    """Returns the same components for every user."""

    def __init__(self, components: RiskScoreComponents):
        self.components = components

    async def calculate_all(self, tenant_id: UUID, user_id: UUID) -> RiskScoreComponents:
        return self.components


class TestUserRiskScoreHistory:
    """Tests for get_user_risk_score_history."""

    async def test_newest_first_with_limit(self, db_session, factory, tenant_id):
        """Test history is returned most recent first and limited."""
        user = await factory.user()
        for day in range(12):
            await factory.risk_score(
                user.user_id,
                overall_score=50.0 + day,
                risk_level="HIGH",
                calculated_at=T0 + timedelta(days=day),
            )

        history = await RiskHistoryStore(db_session).get_user_risk_score_history(
            tenant_id, user.user_id
        )

        assert len(history) == 10
        assert history[0].overall_score == 61.0
        assert history[-1].overall_score == 52.0


class TestHighRiskUsers:
    """Tests for get_high_risk_users."""

    async def test_uses_latest_snapshot(self, db_session, factory, tenant_id):
        """Test a user who has since improved is not reported."""
        improved = await factory.user(first_name="Ada", last_name="Improved")
        struggling = await factory.user(first_name="Bob", last_name="Struggling")

        await factory.risk_score(
            improved.user_id, overall_score=20.0, risk_level="CRITICAL", calculated_at=T0
        )
        await factory.risk_score(
            improved.user_id,
            overall_score=85.0,
            risk_level="LOW",
            calculated_at=T0 + timedelta(days=1),
        )
        await factory.risk_score(
            struggling.user_id, overall_score=30.0, risk_level="CRITICAL", calculated_at=T0
        )

        users = await RiskHistoryStore(db_session).get_high_risk_users(tenant_id)

        assert [u.user_id for u in users] == [struggling.user_id]
        assert users[0].risk_level == RiskLevel.CRITICAL
        assert users[0].user is not None
        assert users[0].user.name == "Bob Struggling"

    async def test_ascending_with_threshold_and_limit(self, db_session, factory, tenant_id):
        """Test results are riskiest first, strictly below the threshold, limited."""
        scores = [10.0, 35.0, 25.0, 60.0, 60.0]
        users = await factory.users(len(scores))
        for user, score in zip(users, scores, strict=True):
            await factory.risk_score(
                user.user_id, overall_score=score, risk_level="HIGH", calculated_at=T0
            )

        store = RiskHistoryStore(db_session)

        result = await store.get_high_risk_users(tenant_id, threshold=60.0, limit=2)
        assert [u.overall_score for u in result] == [10.0, 25.0]

        result = await store.get_high_risk_users(tenant_id, threshold=60.0)
        assert [u.overall_score for u in result] == [10.0, 25.0, 35.0]


class TestTenantRiskStats:
    """Tests for get_tenant_risk_stats."""

    async def test_nobody_scored(self, db_session, factory, tenant_id):
        """Test the zeroed structure when nobody has been scored."""
        await factory.users(2)

        stats = await RiskHistoryStore(db_session).get_tenant_risk_stats(tenant_id)

        assert stats.total_users == 2
        assert stats.users_assessed == 0
        assert stats.average_score == 0.0
        assert all(count == 0 for count in stats.level_counts.values())
        assert set(stats.to_dict()["risk_distribution"]) == {"LOW", "MEDIUM", "HIGH", "CRITICAL"}

    async def test_distribution_of_latest_scores(self, db_session, factory, tenant_id):
        """Test buckets and the average use each user's latest score."""
        a, b, _ = await factory.users(3)
        await factory.risk_score(
            a.user_id, overall_score=10.0, risk_level="CRITICAL", calculated_at=T0
        )
        await factory.risk_score(
            a.user_id, overall_score=90.0, risk_level="LOW", calculated_at=T0 + timedelta(days=1)
        )
        await factory.risk_score(
            b.user_id, overall_score=65.0, risk_level="MEDIUM", calculated_at=T0
        )

        stats = await RiskHistoryStore(db_session).get_tenant_risk_stats(tenant_id)

        assert stats.total_users == 3
        assert stats.users_assessed == 2
        assert stats.average_score == 77.5
        assert stats.level_counts[RiskLevel.LOW] == 1
        assert stats.level_counts[RiskLevel.MEDIUM] == 1
        assert stats.level_counts[RiskLevel.CRITICAL] == 0


class TestScoresNearLevelBoundary:
    """Tests for history queries over scores that round onto a level boundary."""

    @pytest.fixture
    def aggregator(self, session_factory, event_bus):
        """Aggregator weighting phishing only, producing an overall of 39.996."""
        weights = RiskWeights(
            phishing=1.0,
            training_completion=0.0,
            training_recency=0.0,
            quiz_performance=0.0,
            security_incidents=0.0,
            login_anomalies=0.0,
        )
        components = RiskScoreComponents(
            phishing=39.996,
            training_completion=0.0,
            training_recency=0.0,
            quiz_performance=0.0,
            security_incident=0.0,
            login_anomaly=0.0,
        )
        return RiskAggregator(
            session_factory,
            event_bus,
            weights=weights,
            calculators=FixedCalculators(components),
        )

    async def test_critical_user_is_reported_below_threshold(
        self, aggregator, db_session, factory, tenant_id
    ):
        """Test a CRITICAL score reported as 40.0 still counts as below 40."""
        user = await factory.user()

        result = await aggregator.calculate_user_risk_score(tenant_id, user.user_id)
        store = RiskHistoryStore(db_session)
        high_risk = await store.get_high_risk_users(tenant_id, threshold=40.0)
        stats = await store.get_tenant_risk_stats(tenant_id)

        assert result.overall_score == 40.0
        assert result.risk_level == RiskLevel.CRITICAL
        assert [u.user_id for u in high_risk] == [user.user_id]
        assert high_risk[0].risk_level == RiskLevel.CRITICAL
        assert stats.level_counts[RiskLevel.CRITICAL] == 1
        assert stats.level_counts[RiskLevel.HIGH] == 0

    async def test_history_keeps_full_precision(self, aggregator, db_session, factory, tenant_id):
        """Test the stored snapshot keeps the unrounded score with its level."""
        user = await factory.user()

        await aggregator.calculate_user_risk_score(tenant_id, user.user_id)
        [record] = await RiskHistoryStore(db_session).get_user_risk_score_history(
            tenant_id, user.user_id
        )

        assert record.overall_score == pytest.approx(39.996)
        assert record.phishing_score == pytest.approx(39.996)
        assert record.risk_level == "CRITICAL"


class TestRiskTrends:
    """Tests for get_risk_trends and predict_risk_trend."""

    async def test_trends_are_chronological(self, db_session, factory, tenant_id):
        """Test trend points are oldest first and can be filtered."""
        a, b = await factory.users(2)
        await factory.risk_score(
            a.user_id, overall_score=70.0, risk_level="MEDIUM", calculated_at=T0 + timedelta(days=2)
        )
        await factory.risk_score(a.user_id, overall_score=50.0, risk_level="HIGH", calculated_at=T0)
        await factory.risk_score(
            b.user_id, overall_score=90.0, risk_level="LOW", calculated_at=T0 + timedelta(days=1)
        )

        store = RiskHistoryStore(db_session)

        points = await store.get_risk_trends(tenant_id)
        assert [p.score for p in points] == [50.0, 90.0, 70.0]

        points = await store.get_risk_trends(tenant_id, user_id=a.user_id)
        assert [p.score for p in points] == [50.0, 70.0]

        points = await store.get_risk_trends(tenant_id, since=T0 + timedelta(hours=1))
        assert [p.score for p in points] == [90.0, 70.0]

    async def test_prediction_needs_five_points(self, db_session, factory, tenant_id):
        """Test fewer than 5 snapshots yields INSUFFICIENT_DATA."""
        user = await factory.user()
        for day in range(4):
            await factory.risk_score(
                user.user_id,
                overall_score=60.0,
                risk_level="MEDIUM",
                calculated_at=T0 + timedelta(days=day),
            )

        prediction = await RiskHistoryStore(db_session).predict_risk_trend(
            tenant_id, user.user_id, days_ahead=30
        )

        assert prediction.trend == TrendDirection.INSUFFICIENT_DATA
        assert prediction.predicted_score is None
        assert prediction.data_points == 4

    async def test_prediction_from_history(self, db_session, factory, tenant_id):
        """Test the linear projection over the stored snapshots."""
        user = await factory.user()
        for day, score in enumerate([40.0, 45.0, 50.0, 55.0, 60.0]):
            await factory.risk_score(
                user.user_id,
                overall_score=score,
                risk_level="HIGH",
                calculated_at=T0 + timedelta(days=day),
            )

        prediction = await RiskHistoryStore(db_session).predict_risk_trend(
            tenant_id, user.user_id, days_ahead=10
        )

        # mean 50 + (60 - 40) / 5 * 10
        assert prediction.predicted_score == 90.0
        assert prediction.current_score == 60.0
        assert prediction.trend == TrendDirection.INCREASING
        assert prediction.confidence == PredictionConfidence.MEDIUM


class TestPredictFromScores:
    """Tests for the pure projection."""

    def test_clamped_and_decreasing(self):
        """Test a falling series is clamped at 0."""
        prediction = predict_from_scores(UUID(int=1), [10.0, 20.0, 30.0, 40.0, 50.0], 100)

        assert prediction.predicted_score == 0.0
        assert prediction.trend == TrendDirection.DECREASING

    def test_flat_series_is_decreasing(self):
        """Test no change is reported as DECREASING."""
        prediction = predict_from_scores(UUID(int=1), [50.0] * 5, 30)

        assert prediction.predicted_score == pytest.approx(50.0)
        assert prediction.trend == TrendDirection.DECREASING

    def test_high_confidence_above_15_points(self):
        """Test more than 15 snapshots gives HIGH confidence."""
        prediction = predict_from_scores(UUID(int=1), [70.0] * 16, 30)

        assert prediction.confidence == PredictionConfidence.HIGH
