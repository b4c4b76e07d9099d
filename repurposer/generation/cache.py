"""Best-effort generation cache.

Every operation reports failure through its return value instead of raising,
so a broken cache only costs latency.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from repurposer.generation.cache_keys import project_cache_prefix

if TYPE_CHECKING:
    from repurposer.storage.repositories.base import CacheBackend, CacheStats

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class GenerationCache:
    def __init__(
        self,
        backend: CacheBackend,
        ttl_seconds: int,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._backend = backend
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    async def lookup(self, key: str) -> str | None:
        """Cached text for ``key``, or None on a miss or backend error."""
        try:
            return await self._backend.get(key, self._clock())
        except Exception as e:
            logger.warning("cache_lookup_failed", key=key, error=str(e))
            return None

    async def store(self, key: str, value: str) -> bool:
        """Write ``value`` with the configured TTL. Returns False if the write failed."""
        try:
            await self._backend.set(key, value, self._clock() + self._ttl)
        except Exception as e:
            logger.warning("cache_store_failed", key=key, error=str(e))
            return False
        return True

    async def invalidate_project(self, project_id: str) -> int:
        """Drop every entry in a project's namespace. Returns -1 on failure."""
        try:
            removed = await self._backend.delete_prefix(project_cache_prefix(project_id))
        except Exception as e:
            logger.warning("cache_invalidate_failed", project_id=project_id, error=str(e))
            return -1
        logger.info("cache_invalidated", project_id=project_id, removed=removed)
        return removed

    async def clean_expired(self) -> int:
        try:
            removed = await self._backend.delete_expired(self._clock())
        except Exception as e:
            logger.warning("cache_cleanup_failed", error=str(e))
            return -1
        logger.info("cache_cleaned", removed=removed)
        return removed

    async def stats(self) -> CacheStats | None:
        try:
            return await self._backend.stats(self._clock())
        except Exception as e:
            logger.warning("cache_stats_failed", error=str(e))
            return None
