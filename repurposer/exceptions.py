"""Exception hierarchy for Repurposer.

Request-level errors carry a machine-readable ``code`` and an HTTP
``status_code`` so the web layer can render them without a lookup table.
"""

from __future__ import annotations

from typing import Any


class RepurposerError(Exception):
    """Base exception for all Repurposer errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str = "",
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}


class NotFoundError(RepurposerError):
    """Raised when a resource is missing or not owned by the caller."""

    code = "NOT_FOUND"
    status_code = 404


class PlanRequiredError(RepurposerError):
    """Raised when the effective plan lacks a capability the request needs."""

    code = "PLAN_REQUIRED"
    status_code = 403


class QuotaExceededError(RepurposerError):
    """Raised when a volume ceiling (projects, outputs, characters, minutes) is hit."""

    code = "QUOTA_EXCEEDED"
    status_code = 403


class RateLimitedError(RepurposerError):
    """Raised when a per-user route category exceeded its window ceiling."""

    code = "RATE_LIMITED"
    status_code = 429

    def __init__(
        self,
        message: str = "",
        *,
        retry_after_seconds: int,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.retry_after_seconds = retry_after_seconds


class RequestValidationError(RepurposerError):
    """Raised when a request is malformed or out of range."""

    code = "VALIDATION_ERROR"
    status_code = 400


class LLMProviderError(RepurposerError):
    """Raised when an LLM provider call fails."""

    code = "LLM_PROVIDER_ERROR"
    status_code = 502


class TranscriptionError(RepurposerError):
    """Raised when the audio transcription provider fails."""

    code = "TRANSCRIPTION_FAILED"
    status_code = 502


class StorageError(RepurposerError):
    """Raised when storage operations fail."""


class ConfigError(RepurposerError):
    """Raised when configuration is invalid."""
