"""Exception hierarchy for the support assistant client.

Only a small set of errors escape the public API. I/O failures during a
submission are never raised to callers; they are classified and converted into
a user-presentable result instead (see ``orchestration.classifier``).
"""

from __future__ import annotations

from typing import Any


class AssistError(Exception):
    """Base exception for all paytrack_assist errors."""


class ConfigurationError(AssistError):
    """Raised when configuration is missing or invalid."""


class ValidationError(AssistError):
    """Raised when input validation fails."""


class TransportError(AssistError):
    """Raised by the transport when the backend answers with an error.

    Carries the HTTP status and the decoded body (when JSON) so the
    classifier can work from structured data rather than message text.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        """Initialize with optional HTTP status, body and Retry-After hint."""
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}
        self.retry_after = retry_after


class DeadlineExceededError(AssistError):
    """Raised when an attempt exceeds its client-side deadline."""

    def __init__(self, timeout_seconds: float) -> None:  # noqa: D107
        super().__init__(f"Request exceeded its {timeout_seconds:g}s deadline")
        self.timeout_seconds = timeout_seconds


class OrchestratorClosedError(AssistError):
    """Raised when a torn-down component is asked to start new work."""
