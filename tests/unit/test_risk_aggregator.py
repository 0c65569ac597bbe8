"""Unit tests for the risk aggregator."""

from uuid import UUID

import pytest

from awarescore.config.settings import RiskWeights
from awarescore.db.repositories.risk import RiskScoreRepository
from awarescore.messaging.events import EventTopic
from awarescore.risk.aggregator import (
    CRITICAL_RECOMMENDATIONS,
    POSITIVE_RECOMMENDATIONS,
    RiskAggregator,
    calculate_overall_score,
    create_risk_aggregator,
    determine_risk_level,
    generate_recommendations,
    register_risk_listeners,
)
from awarescore.risk.factors import FactorCalculators
from awarescore.risk.types import RiskLevel, RiskScoreComponents
from awarescore.utils.exceptions import ConfigurationError

PHISHING_ONLY = RiskWeights(
    phishing=1.0,
    training_completion=0.0,
    training_recency=0.0,
    quiz_performance=0.0,
    security_incidents=0.0,
    login_anomalies=0.0,
)


def _components(value: float = 100.0, **overrides: float) -> RiskScoreComponents:
    values = {
        "phishing": value,
        "training_completion": value,
        "training_recency": value,
        "quiz_performance": value,
        "security_incident": value,
        "login_anomaly": value,
    }
    values.update(overrides)
    return RiskScoreComponents(**values)


class StubCalculators(FactorCalculators):
    """Returns fixed components and fails for selected users."""

    def __init__(
        self,
        components: RiskScoreComponents,
        failing: set[UUID] | None = None,
    ):
        self.components = components
        self.failing = failing or set()

    async def calculate_all(self, tenant_id: UUID, user_id: UUID) -> RiskScoreComponents:
        if user_id in self.failing:
            raise RuntimeError("signal source unavailable")
        return self.components


class TestDetermineRiskLevel:
    """Tests for risk level classification."""

    @pytest.mark.parametrize(
        ("score", "level"),
        [
            (100.0, RiskLevel.LOW),
            (80.0, RiskLevel.LOW),
            (79.99, RiskLevel.MEDIUM),
            (60.0, RiskLevel.MEDIUM),
            (59.99, RiskLevel.HIGH),
            (40.0, RiskLevel.HIGH),
            (39.99, RiskLevel.CRITICAL),
            (0.0, RiskLevel.CRITICAL),
        ],
    )
    def test_boundaries(self, score, level):
        """Test each threshold is inclusive on its lower bound."""
        assert determine_risk_level(score) == level


class TestOverallScore:
    """Tests for the weighted overall score."""

    def test_default_weights_extremes(self):
        """Test the overall score stays within 0-100."""
        weights = RiskWeights()
        assert calculate_overall_score(_components(100.0), weights) == pytest.approx(100.0)
        assert calculate_overall_score(_components(0.0), weights) == pytest.approx(0.0)

    def test_default_weights(self):
        """Test the default weighting of a user with no history."""
        components = _components(
            phishing=50.0,
            training_completion=0.0,
            training_recency=0.0,
            quiz_performance=50.0,
            security_incident=100.0,
            login_anomaly=80.0,
        )
        assert calculate_overall_score(components, RiskWeights()) == pytest.approx(41.5)

    def test_custom_weights(self):
        """Test injected weights replace the defaults."""
        components = _components(0.0, phishing=64.0)
        assert calculate_overall_score(components, PHISHING_ONLY) == pytest.approx(64.0)


class TestGenerateRecommendations:
    """Tests for recommendation generation."""

    def test_positive_when_nothing_fires(self):
        """Test a strong user gets positive reinforcement."""
        recommendations = generate_recommendations(_components(100.0), RiskLevel.LOW)
        assert recommendations == POSITIVE_RECOMMENDATIONS

    def test_rules_fire_independently(self):
        """Test each weak factor adds its own strings in order."""
        components = _components(100.0, phishing=59.0, login_anomaly=69.0)

        recommendations = generate_recommendations(components, RiskLevel.MEDIUM)

        assert recommendations == [
            "Complete additional phishing awareness training",
            "Review email security best practices from Chapter 3",
            "Review login activity for unauthorized access",
            "Enable multi-factor authentication if not already active",
            "Ensure you're following login best practices",
        ]

    def test_thresholds_are_strict(self):
        """Test a sub-score equal to its threshold does not fire."""
        components = _components(
            100.0,
            phishing=60.0,
            training_completion=70.0,
            training_recency=50.0,
            quiz_performance=70.0,
            security_incident=80.0,
            login_anomaly=70.0,
        )
        assert generate_recommendations(components, RiskLevel.MEDIUM) == POSITIVE_RECOMMENDATIONS

    def test_critical_prepends_urgent_entries(self):
        """Test CRITICAL users get the urgent entries first."""
        recommendations = generate_recommendations(_components(0.0), RiskLevel.CRITICAL)

        assert recommendations[:2] == CRITICAL_RECOMMENDATIONS
        assert len(recommendations) == 2 + 13


class TestCalculateUserRiskScore:
    """Tests for RiskAggregator.calculate_user_risk_score."""

    async def test_scores_user_without_history(
        self, session_factory, event_bus, factory, tenant_id
    ):
        """Test scoring a user with no signals persists and publishes the result."""
        user = await factory.user()
        aggregator = RiskAggregator(session_factory, event_bus)

        result = await aggregator.calculate_user_risk_score(tenant_id, user.user_id)

        assert result.overall_score == 41.5
        assert result.risk_level == RiskLevel.HIGH
        assert result.components.phishing == 50.0
        assert result.components.login_anomaly == 80.0
        assert len(result.recommendations) == 8

        async with session_factory() as session:
            history = await RiskScoreRepository(session).history(tenant_id, user.user_id)
        assert len(history) == 1
        assert history[0].overall_score == pytest.approx(41.5)
        assert history[0].risk_level == "HIGH"
        assert history[0].recommendations == result.recommendations

        published = event_bus.events_for(EventTopic.RISK_SCORE_UPDATED)
        assert len(published) == 1
        assert published[0].payload["user_id"] == str(user.user_id)
        assert published[0].payload["risk_level"] == "HIGH"

    async def test_rescoring_appends(self, session_factory, event_bus, factory, tenant_id):
        """Test every calculation adds a new history row."""
        user = await factory.user()
        aggregator = RiskAggregator(session_factory, event_bus)

        await aggregator.calculate_user_risk_score(tenant_id, user.user_id)
        await aggregator.calculate_user_risk_score(tenant_id, user.user_id)

        async with session_factory() as session:
            history = await RiskScoreRepository(session).history(tenant_id, user.user_id)
        assert len(history) == 2

    async def test_level_from_unrounded_score(self, session_factory, event_bus, tenant_id):
        """Test 79.996 is reported as 80.0 but classified MEDIUM."""
        calculators = StubCalculators(_components(0.0, phishing=79.996))
        aggregator = RiskAggregator(
            session_factory, event_bus, weights=PHISHING_ONLY, calculators=calculators
        )

        result = await aggregator.calculate_user_risk_score(tenant_id, UUID(int=1))

        assert result.overall_score == 80.0
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.components.phishing == 80.0

        async with session_factory() as session:
            [record] = await RiskScoreRepository(session).history(tenant_id, UUID(int=1))
        assert record.overall_score == pytest.approx(79.996)
        assert record.risk_level == "MEDIUM"

    async def test_values_rounded_to_two_decimals(self, session_factory, event_bus, tenant_id):
        """Test sub-scores and the overall score are rounded."""
        calculators = StubCalculators(_components(100.0 / 3))
        aggregator = RiskAggregator(session_factory, event_bus, calculators=calculators)

        result = await aggregator.calculate_user_risk_score(tenant_id, UUID(int=2))

        assert result.overall_score == 33.33
        assert result.components.quiz_performance == 33.33


class TestBulkCalculateRiskScores:
    """Tests for RiskAggregator.bulk_calculate_risk_scores."""

    async def test_scores_every_user(self, session_factory, event_bus, factory, tenant_id):
        """Test all tenant users are scored."""
        users = await factory.users(3)
        aggregator = RiskAggregator(session_factory, event_bus, concurrency=2)

        summary = await aggregator.bulk_calculate_risk_scores(tenant_id)

        assert summary.attempted == 3
        assert summary.succeeded == 3
        assert summary.failed_user_ids == []
        assert len(event_bus.events_for(EventTopic.RISK_SCORE_UPDATED)) == len(users)

    async def test_failures_are_skipped(self, session_factory, event_bus, factory, tenant_id):
        """Test one failing user does not stop the run."""
        users = await factory.users(3)
        bad = users[1].user_id
        calculators = StubCalculators(_components(90.0), failing={bad})
        aggregator = RiskAggregator(
            session_factory, event_bus, calculators=calculators, concurrency=1
        )

        summary = await aggregator.bulk_calculate_risk_scores(tenant_id)

        assert summary.attempted == 3
        assert summary.succeeded == 2
        assert summary.failed_user_ids == [bad]
        assert summary.to_dict()["failed"] == 1

    def test_rejects_zero_concurrency(self, session_factory, event_bus):
        """Test a concurrency below 1 is a configuration error."""
        with pytest.raises(ConfigurationError):
            RiskAggregator(session_factory, event_bus, concurrency=0)

    async def test_empty_tenant(self, session_factory, event_bus, tenant_id):
        """Test a tenant without users yields an empty summary."""
        aggregator = create_risk_aggregator(session_factory, event_bus)

        summary = await aggregator.bulk_calculate_risk_scores(tenant_id)

        assert summary.attempted == 0
        assert summary.succeeded == 0


class TestRiskListeners:
    """Tests for re-scoring on phishing notifications."""

    async def test_click_triggers_rescore(self, session_factory, event_bus, factory, tenant_id):
        """Test a phishing.clicked notification re-scores the user."""
        user = await factory.user()
        register_risk_listeners(event_bus, RiskAggregator(session_factory, event_bus))

        await event_bus.publish(
            EventTopic.PHISHING_CLICKED,
            {"tenant_id": str(tenant_id), "user_id": str(user.user_id), "campaign_id": "X"},
        )

        async with session_factory() as session:
            history = await RiskScoreRepository(session).history(tenant_id, user.user_id)
        assert len(history) == 1
