"""
Error Taxonomy
==============
Every failure the service can report is a StackServiceError tagged with an
ErrorKind. The dispatcher only looks at the kind to pick a status code, so a
caller can tell a retryable failure (conflict, upstream_unavailable) from a
terminal one (validation, internal) without parsing the message.

  validation            → 400  bad body, bad bucket name, unknown action
  conflict              → 409  another update holds the stack lock
  upstream_unavailable  → 503  Pulumi CLI / backend / provider unreachable
  internal              → 500  everything else
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}


class StackServiceError(Exception):
    """Base class. `kind` decides the HTTP status; str(exc) is the description."""
    kind = ErrorKind.INTERNAL


class InvalidSpecificationError(StackServiceError):
    """The request body does not describe a valid ResourceSpec."""
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, details: list | None = None):
        self.details = details or []
        super().__init__(message)


class UnknownActionError(StackServiceError):
    kind = ErrorKind.VALIDATION

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"unknown action: {action}")


class StackConflictError(StackServiceError):
    """Pulumi refused the operation because the stack is locked or already exists."""
    kind = ErrorKind.CONFLICT


class UpstreamUnavailableError(StackServiceError):
    """The Pulumi CLI, its backend or the cloud provider failed to respond."""
    kind = ErrorKind.UPSTREAM_UNAVAILABLE


class StackResolutionError(StackServiceError):
    kind = ErrorKind.INTERNAL


class ConfigPropagationError(StackServiceError):
    kind = ErrorKind.INTERNAL


class MissingOutputError(StackServiceError):
    """`up` finished without a usable stack output."""
    kind = ErrorKind.INTERNAL

    def __init__(self, output_name: str, value=None):
        self.output_name = output_name
        if value is None:
            message = f"stack output {output_name!r} is missing"
        else:
            message = f"stack output {output_name!r} is not a string: {type(value).__name__}"
        super().__init__(message)


class UnsupportedResourceError(StackServiceError):
    kind = ErrorKind.INTERNAL
