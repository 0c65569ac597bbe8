"""User risk scoring: factor calculators, aggregation and history.

Usage:
    from awarescore.risk import create_risk_aggregator, RiskHistoryStore

    aggregator = create_risk_aggregator(session_factory, bus)
    result = await aggregator.calculate_user_risk_score(tenant_id, user_id)
"""

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
from awarescore.risk.factors import (
    FactorCalculators,
    count_login_anomalies,
    days_since,
    login_anomaly_score,
    phishing_behavior_score,
    quiz_performance_score,
    security_incident_score,
    training_completion_score,
    training_recency_score,
)
from awarescore.risk.history import RiskHistoryStore, predict_from_scores
from awarescore.risk.types import (
    BulkScoringSummary,
    HighRiskUser,
    PredictionConfidence,
    RiskLevel,
    RiskScoreComponents,
    RiskScoreResult,
    RiskTrendPoint,
    RiskTrendPrediction,
    TenantRiskStats,
    TrendDirection,
)

__all__ = [
    # Aggregator
    "CRITICAL_RECOMMENDATIONS",
    "POSITIVE_RECOMMENDATIONS",
    "RiskAggregator",
    "calculate_overall_score",
    "create_risk_aggregator",
    "determine_risk_level",
    "generate_recommendations",
    "register_risk_listeners",
    # Factors
    "FactorCalculators",
    "count_login_anomalies",
    "days_since",
    "login_anomaly_score",
    "phishing_behavior_score",
    "quiz_performance_score",
    "security_incident_score",
    "training_completion_score",
    "training_recency_score",
    # History
    "RiskHistoryStore",
    "predict_from_scores",
    # Types
    "BulkScoringSummary",
    "HighRiskUser",
    "PredictionConfidence",
    "RiskLevel",
    "RiskScoreComponents",
    "RiskScoreResult",
    "RiskTrendPoint",
    "RiskTrendPrediction",
    "TenantRiskStats",
    "TrendDirection",
]
