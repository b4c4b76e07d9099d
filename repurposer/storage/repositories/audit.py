"""Append-only audit log repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlmodel.ext.asyncio.session import AsyncSession

from repurposer.models.database import AuditLog, _utc_now
from repurposer.storage.repositories.base import AuditRepository

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncEngine


@dataclass(frozen=True)
class AuditEntry:
    user_id: str
    action: str
    details_json: str
    project_id: str | None = None
    request_id: str = ""
    created_at: datetime = field(default_factory=_utc_now)


class InMemoryAuditRepository(AuditRepository):
    """Keeps entries in a list; used in dev mode and tests."""

    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []

    async def append(
        self,
        *,
        user_id: str,
        action: str,
        details_json: str,
        project_id: str | None = None,
        request_id: str = "",
    ) -> None:
        self.entries.append(
            AuditEntry(
                user_id=user_id,
                action=action,
                details_json=details_json,
                project_id=project_id,
                request_id=request_id,
            )
        )


class DatabaseAuditRepository(AuditRepository):
    """Insert-only writer with its own session.

    The separate session ensures audit entries persist even if the
    calling transaction rolls back.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def append(
        self,
        *,
        user_id: str,
        action: str,
        details_json: str,
        project_id: str | None = None,
        request_id: str = "",
    ) -> None:
        async with AsyncSession(self._engine) as session:
            session.add(
                AuditLog(
                    user_id=user_id,
                    action=action,
                    details_json=details_json,
                    project_id=project_id,
                    request_id=request_id,
                )
            )
            await session.commit()
