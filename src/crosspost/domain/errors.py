"""
Error taxonomy shared by every destination.

Adapters raise these exceptions internally; the error classifier turns them
(and any upstream failure) into a ClassifiedError with one of the ErrorKind
values below.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Normalized, destination-agnostic failure kinds."""

    VALIDATION = "validation"
    AUTH = "auth"
    PERMISSION = "permission"
    RATE_LIMIT = "rate_limit"
    UPSTREAM_INVALID = "upstream_invalid"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class PublishError(Exception):
    """Base exception for publishing failures that already know their kind."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.retry_after = retry_after


class PublishValidationError(PublishError):
    """Caller input is missing or violates a destination's limits."""

    kind = ErrorKind.VALIDATION


class UpstreamInvalidError(PublishError):
    """A destination answered with an unexpected or malformed response."""

    kind = ErrorKind.UPSTREAM_INVALID


class MediaProcessingError(UpstreamInvalidError):
    """A destination reported that it failed to process uploaded media."""
