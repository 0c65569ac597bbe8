"""Core services and utilities for AwareScore."""

from .context import (
    ActorType,
    RequestContext,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
    reset_context,
    set_context,
)
from .exceptions import (
    ConflictError,
    ContextNotSetError,
    NotFoundError,
    ValidationFailure,
)

__all__ = [
    # Context
    "ActorType",
    "RequestContext",
    "create_context",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    "reset_context",
    "set_context",
    # Exceptions
    "ConflictError",
    "ContextNotSetError",
    "NotFoundError",
    "ValidationFailure",
]
