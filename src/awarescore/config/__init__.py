"""Configuration for AwareScore."""

from awarescore.config.settings import RiskWeights, Settings, get_settings

__all__ = [
    "RiskWeights",
    "Settings",
    "get_settings",
]
