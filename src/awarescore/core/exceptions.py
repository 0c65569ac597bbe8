"""Core exceptions for AwareScore analytics and request context."""

from uuid import UUID

from awarescore.utils.exceptions import AwareScoreError


class ContextNotSetError(AwareScoreError):
    """Raised when attempting to access request context that is not set.

    This error indicates a programming error - operations requiring context
    are being called outside of a request_context() context manager.
    """

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


class NotFoundError(AwareScoreError):
    """Raised when a referenced event, campaign or user does not exist.

    Attributes:
        resource: Kind of resource that was looked up (e.g., "phishing_event")
        identifier: The identifier that did not resolve
    """

    def __init__(self, resource: str, identifier: UUID | str, message: str | None = None):
        super().__init__(message or f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier

    def __str__(self) -> str:
        return f"NotFoundError: {self.args[0]}"


class ConflictError(AwareScoreError):
    """Raised when an action has already been recorded on a phishing event.

    Attributes:
        resource: Kind of resource that was being mutated
        identifier: Identifier of the mutated row
        action: The action that was already recorded (e.g., "CLICKED")
    """

    def __init__(self, resource: str, identifier: UUID | str, action: str):
        super().__init__(f"{action.capitalize()} already recorded for {resource} {identifier}")
        self.resource = resource
        self.identifier = identifier
        self.action = action

    def __str__(self) -> str:
        return f"ConflictError({self.action}): {self.args[0]}"


class ValidationFailure(AwareScoreError):
    """Raised when caller-supplied input is rejected.

    Input validation normally happens before requests reach the engine; this
    exists so callers can map engine-side rejections onto the same category.

    Attributes:
        field: Name of the offending field, if known
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"ValidationFailure({self.field}): {self.args[0]}"
        return f"ValidationFailure: {self.args[0]}"
