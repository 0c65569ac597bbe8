"""AwareScore: user risk scoring and phishing simulation analytics."""

__version__ = "0.1.0"
