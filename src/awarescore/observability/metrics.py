"""Prometheus metrics for AwareScore observability.

This module provides Prometheus metrics for monitoring:
- Risk scoring (score distribution, level counts, bulk run duration)
- Phishing simulations (campaigns launched, targets, recorded actions)
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "MetricsConfig",
    "RISK_SCORE_DISTRIBUTION",
    "RISK_LEVEL_COUNT",
    "RISK_SCORE_FAILURES",
    "BULK_SCORING_DURATION",
    "CAMPAIGNS_CREATED",
    "CAMPAIGN_TARGETS",
    "PHISHING_ACTIONS",
    "observe_risk_score",
    "record_risk_score_failure",
    "observe_bulk_scoring",
    "record_campaign_created",
    "record_phishing_action",
    "get_metrics",
]


@dataclass
class MetricsConfig:
    """Configuration for Prometheus metrics.

    Attributes:
        enabled: Whether metrics collection is enabled.
        prefix: Prefix for all metric names.
    """

    enabled: bool = True
    prefix: str = "awarescore"

    @classmethod
    def from_env(cls) -> MetricsConfig:
        """Create configuration from environment variables."""
        return cls(
            enabled=os.getenv("METRICS_ENABLED", "true").lower() == "true",
            prefix=os.getenv("METRICS_PREFIX", "awarescore"),
        )


_config = MetricsConfig.from_env()

# ============================================================================
# Risk Scoring Metrics
# ============================================================================

RISK_SCORE_DISTRIBUTION = Histogram(
    f"{_config.prefix}_risk_score",
    "Distribution of overall user risk scores (higher = lower risk)",
    ["level"],
    buckets=(0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)

RISK_LEVEL_COUNT = Counter(
    f"{_config.prefix}_risk_levels_total",
    "Count of computed risk scores by level",
    ["level"],
)

RISK_SCORE_FAILURES = Counter(
    f"{_config.prefix}_risk_score_failures_total",
    "Risk score computations that failed during bulk runs",
)

BULK_SCORING_DURATION = Histogram(
    f"{_config.prefix}_bulk_scoring_duration_seconds",
    "Time to re-score every user of a tenant",
    buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0),
)

# ============================================================================
# Phishing Simulation Metrics
# ============================================================================

CAMPAIGNS_CREATED = Counter(
    f"{_config.prefix}_phishing_campaigns_total",
    "Phishing campaigns launched",
    ["difficulty"],
)

CAMPAIGN_TARGETS = Histogram(
    f"{_config.prefix}_phishing_campaign_targets",
    "Number of users targeted per campaign",
    buckets=(0, 1, 10, 50, 100, 500, 1000, 5000, 10000),
)

PHISHING_ACTIONS = Counter(
    f"{_config.prefix}_phishing_actions_total",
    "User actions recorded against phishing events",
    ["action"],
)


def observe_risk_score(score: float, level: str) -> None:
    """Record a computed risk score.

    Args:
        score: Overall risk score (0-100).
        level: Risk level.
    """
    if not _config.enabled:
        return
    RISK_SCORE_DISTRIBUTION.labels(level=level).observe(score)
    RISK_LEVEL_COUNT.labels(level=level).inc()


def record_risk_score_failure() -> None:
    """Record a failed risk score computation."""
    if _config.enabled:
        RISK_SCORE_FAILURES.inc()


@contextmanager
def observe_bulk_scoring() -> Generator[dict[str, Any], None, None]:
    """Context manager timing a bulk scoring run.

    Yields:
        Dict the caller may fill with run details (unused by the metric).
    """
    start = time.perf_counter()
    ctx: dict[str, Any] = {}
    try:
        yield ctx
    finally:
        if _config.enabled:
            BULK_SCORING_DURATION.observe(time.perf_counter() - start)


def record_campaign_created(difficulty: str, target_count: int) -> None:
    """Record a launched phishing campaign."""
    if not _config.enabled:
        return
    CAMPAIGNS_CREATED.labels(difficulty=difficulty).inc()
    CAMPAIGN_TARGETS.observe(target_count)


def record_phishing_action(action: str) -> None:
    """Record a user action against a phishing event."""
    if _config.enabled:
        PHISHING_ACTIONS.labels(action=action).inc()


def get_metrics() -> bytes:
    """Render all metrics in Prometheus text format."""
    return generate_latest(REGISTRY)
