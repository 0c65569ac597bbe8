"""Observability module for AwareScore.

Usage:
    from awarescore.observability import observe_risk_score, get_metrics

    observe_risk_score(score=72.5, level="MEDIUM")
    body = get_metrics()
"""

from awarescore.observability.metrics import (
    MetricsConfig,
    get_metrics,
    observe_bulk_scoring,
    observe_risk_score,
    record_campaign_created,
    record_phishing_action,
    record_risk_score_failure,
)

__all__ = [
    "MetricsConfig",
    "get_metrics",
    "observe_bulk_scoring",
    "observe_risk_score",
    "record_campaign_created",
    "record_phishing_action",
    "record_risk_score_failure",
]
