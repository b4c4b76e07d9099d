"""Cache entry backends: in-memory and SQLModel-backed."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from repurposer.models.database import CacheEntry
from repurposer.storage.repositories.base import CacheBackend, CacheStats

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def _naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class InMemoryCacheBackend(CacheBackend):
    """Dict-backed cache used in dev mode and tests."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, datetime]] = {}

    async def get(self, key: str, now: datetime) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= _naive(now):
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, expires_at: datetime) -> None:
        self._entries[key] = (value, _naive(expires_at))

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def delete_expired(self, now: datetime) -> int:
        cutoff = _naive(now)
        doomed = [k for k, (_, exp) in self._entries.items() if exp <= cutoff]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def stats(self, now: datetime) -> CacheStats:
        cutoff = _naive(now)
        expired = sum(1 for _, exp in self._entries.values() if exp <= cutoff)
        return CacheStats(
            total=len(self._entries), active=len(self._entries) - expired, expired=expired
        )


class DatabaseCacheBackend(CacheBackend):
    """Cache entries stored in the ``cache_entries`` table."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get(self, key: str, now: datetime) -> str | None:
        async with AsyncSession(self._engine) as session:
            entry = await session.get(CacheEntry, key)
            if entry is None:
                return None
            if entry.expires_at <= _naive(now):
                await session.delete(entry)
                await session.commit()
                return None
            return entry.value

    async def set(self, key: str, value: str, expires_at: datetime) -> None:
        async with AsyncSession(self._engine) as session:
            entry = await session.get(CacheEntry, key)
            if entry is None:
                entry = CacheEntry(key=key, value=value, expires_at=_naive(expires_at))
            else:
                entry.value = value
                entry.expires_at = _naive(expires_at)
            session.add(entry)
            await session.commit()

    async def delete_prefix(self, prefix: str) -> int:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                delete(CacheEntry).where(
                    col(CacheEntry.key).like(f"{_escape_like(prefix)}%", escape="\\")
                )
            )
        return int(result.rowcount or 0)

    async def delete_expired(self, now: datetime) -> int:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                delete(CacheEntry).where(col(CacheEntry.expires_at) <= _naive(now))
            )
        return int(result.rowcount or 0)

    async def stats(self, now: datetime) -> CacheStats:
        async with AsyncSession(self._engine) as session:
            total = (
                await session.execute(select(func.count()).select_from(CacheEntry))
            ).scalar_one()
            expired = (
                await session.execute(
                    select(func.count())
                    .select_from(CacheEntry)
                    .where(col(CacheEntry.expires_at) <= _naive(now))
                )
            ).scalar_one()
        return CacheStats(total=int(total), active=int(total) - int(expired), expired=int(expired))
