"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    user_id: str
    destination: str
    upstream_status: int
    retry_after: int
    fields: list[dict[str, Any]]
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class NotFoundAppError(AppError):
    """Raised when the requested record does not exist (or is not active)."""


class ConflictAppError(AppError):
    """Raised when a record already exists."""


class StorageAppError(AppError):
    """Raised when the user directory cannot be read or written."""


class UpstreamAppError(AppError):
    """Raised when a third-party dependency fails."""


class ProfileFetchError(UpstreamAppError):
    """Profile API unreachable, timed out, non-2xx or malformed payload."""


class ProfileNotFoundError(UpstreamAppError):
    """Profile API reported that the user does not exist."""


class WebhookRelayError(UpstreamAppError):
    """Webhook destination unreachable or returned a non-2xx status."""
