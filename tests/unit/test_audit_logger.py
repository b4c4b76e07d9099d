"""Unit tests for repurposer/audit/logger.py."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
import structlog

from repurposer.audit.logger import AuditLogger
from repurposer.storage.repositories.audit import InMemoryAuditRepository


@pytest.mark.unit
class TestAuditLogger:
    async def test_sensitive_fields_stripped(self) -> None:
        repo = InMemoryAuditRepository()
        await AuditLogger(repo).log(
            user_id="u1",
            action="project_update",
            project_id="p1",
            details={"title": "New", "source_content": "secret draft", "API_KEY": "sk"},
        )
        details = json.loads(repo.entries[0].details_json)
        assert details == {"title": "New"}
        assert repo.entries[0].project_id == "p1"

    async def test_oversized_details_truncated(self) -> None:
        repo = InMemoryAuditRepository()
        await AuditLogger(repo).log(user_id="u1", action="x", details={"blob": "a" * 20_000})
        assert len(repo.entries[0].details_json) == 10_240

    async def test_request_id_taken_from_context(self) -> None:
        repo = InMemoryAuditRepository()
        with structlog.contextvars.bound_contextvars(request_id="req-123"):
            await AuditLogger(repo).log(user_id="u1", action="generate")
        assert repo.entries[0].request_id == "req-123"

    async def test_repository_failure_is_swallowed(self) -> None:
        repo = AsyncMock()
        repo.append = AsyncMock(side_effect=OSError("disk full"))
        await AuditLogger(repo).log(user_id="u1", action="generate")
        repo.append.assert_awaited_once()
