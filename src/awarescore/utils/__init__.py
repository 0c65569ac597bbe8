"""Utility modules for AwareScore."""

from awarescore.utils.exceptions import (
    AwareScoreError,
    ConfigurationError,
)

__all__ = [
    "AwareScoreError",
    "ConfigurationError",
]
