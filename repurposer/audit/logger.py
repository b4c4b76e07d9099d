"""Audit logger: immutable, insert-only audit trail.

Details JSON is sanitized (sensitive fields stripped, 10KB max) and a failed
write is logged, never raised.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from repurposer.storage.repositories.base import AuditRepository

logger = structlog.get_logger(__name__)

_SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "cookie",
        "session",
        "source_content",
    }
)

_MAX_DETAILS_BYTES = 10_240  # 10KB


def _sanitize_details(details: dict[str, Any]) -> str:
    """Strip sensitive fields and enforce size limit."""
    sanitized = {k: v for k, v in details.items() if k.lower() not in _SENSITIVE_FIELDS}
    encoded = json.dumps(sanitized, default=str)
    if len(encoded) > _MAX_DETAILS_BYTES:
        encoded = encoded[:_MAX_DETAILS_BYTES]
    return encoded


class AuditLogger:
    """Insert-only audit logger over an audit repository."""

    def __init__(self, repository: AuditRepository) -> None:
        self._repository = repository

    async def log(
        self,
        *,
        user_id: str,
        action: str,
        project_id: str | None = None,
        details: dict[str, Any] | None = None,
        request_id: str = "",
    ) -> None:
        """Write an audit log entry."""
        details_json = _sanitize_details(details or {})
        if not request_id:
            request_id = structlog.contextvars.get_contextvars().get("request_id", "")

        try:
            await self._repository.append(
                user_id=user_id,
                action=action,
                details_json=details_json,
                project_id=project_id,
                request_id=request_id,
            )
        except Exception:
            # Audit must never break the request
            logger.exception("audit_log_failed", action=action, user_id=user_id)
