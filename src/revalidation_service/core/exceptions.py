"""Common exceptions for validation and execution layers."""
from __future__ import annotations


class RevalidationError(Exception):
    """Base error for the revalidation service."""


class ValidationError(RevalidationError):
    """Raised when an inbound invalidation request is rejected."""


class Unauthorized(ValidationError):
    """Raised when the shared secret does not match."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class MalformedPayload(ValidationError):
    """Raised when the payload cannot be mapped to an invalidation request."""


class UnsupportedEntity(ValidationError):
    """Raised when an entity type has no page mapping.

    Soft error: contained by the resolver and turned into a skipped batch.
    """

    def __init__(self, entity_type: str):
        super().__init__(f"unsupported entity type {entity_type}")
        self.entity_type = entity_type


class ExecutionError(RevalidationError):
    """Base error for page regeneration attempts."""


class TransientExecutionFailure(ExecutionError):
    """Regeneration failed in a way that is worth retrying (5xx, network)."""

    def __init__(self, message: str, *, http_status: int | None = None):
        super().__init__(message)
        self.http_status = http_status


class PermanentExecutionFailure(ExecutionError):
    """Regeneration was refused (4xx); retrying will not help."""

    def __init__(self, message: str, *, http_status: int | None = None):
        super().__init__(message)
        self.http_status = http_status


class InvalidationTimeout(TransientExecutionFailure):
    """A single regeneration attempt ran out of time."""

    def __init__(self, message: str = "timeout"):
        super().__init__(message)


class ContentGraphError(RevalidationError):
    """Raised when the content graph lookup cannot answer."""
