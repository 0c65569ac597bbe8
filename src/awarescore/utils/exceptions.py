"""Custom exceptions for AwareScore."""


class AwareScoreError(Exception):
    """Base exception for all AwareScore errors."""

    pass


class ConfigurationError(AwareScoreError):
    """Error in configuration or settings."""

    pass
