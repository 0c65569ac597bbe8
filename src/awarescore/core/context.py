"""Request-scoped identity for tenant and actor.

The active RequestContext lives in a ContextVar, so it follows the call
into tasks spawned by ``asyncio.gather`` without being passed around.
Logging reads it to stamp entries; campaign creation reads it to record
who launched a simulation.

Usage:
    from awarescore.core.context import create_context, request_context

    with request_context(create_context(tenant_id=tenant_id, actor_id=admin_id)):
        await tracker.create_campaign(request)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from uuid_utils.compat import uuid7

from awarescore.core.exceptions import ContextNotSetError


class ActorType(str, Enum):
    """Who triggered an operation."""

    HUMAN = "human"  # administrator
    SERVICE = "service"  # another backend, e.g. the training platform
    SYSTEM = "system"  # scheduled job such as a nightly bulk re-score


class RequestContext(BaseModel):
    """Identity of the tenant and actor behind the current operation."""

    model_config = ConfigDict(frozen=True)

    tenant_id: UUID
    actor_id: UUID
    actor_type: ActorType = ActorType.HUMAN
    request_id: UUID = Field(default_factory=uuid7)
    correlation_id: UUID = Field(default_factory=uuid7)
    initiated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tenant_id": str(self.tenant_id),
            "actor_id": str(self.actor_id),
            "actor_type": self.actor_type.value,
            "request_id": str(self.request_id),
            "correlation_id": str(self.correlation_id),
            "initiated_at": self.initiated_at.isoformat(),
        }


_current: ContextVar[RequestContext | None] = ContextVar("awarescore_request", default=None)


def get_current_context() -> RequestContext:
    """Return the active context.

    Raises:
        ContextNotSetError: Outside a ``request_context()`` block.
    """
    ctx = _current.get()
    if ctx is None:
        raise ContextNotSetError("No request context is active; wrap the call in request_context()")
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    """Return the active context, or None outside a request."""
    return _current.get()


def set_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Activate ``ctx``; pass the returned token to reset_context()."""
    return _current.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    """Restore whatever context was active before set_context()."""
    _current.reset(token)


@contextmanager
def request_context(ctx: RequestContext) -> Iterator[RequestContext]:
    """Activate ``ctx`` for the duration of the block, restoring the previous one after."""
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def create_context(
    *,
    tenant_id: UUID,
    actor_id: UUID,
    actor_type: ActorType = ActorType.HUMAN,
    correlation_id: UUID | None = None,
) -> RequestContext:
    """Build a RequestContext, generating a correlation id when none is given."""
    return RequestContext(
        tenant_id=tenant_id,
        actor_id=actor_id,
        actor_type=actor_type,
        correlation_id=correlation_id or uuid7(),
    )
