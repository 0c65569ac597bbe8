"""Database layer for AwareScore."""
