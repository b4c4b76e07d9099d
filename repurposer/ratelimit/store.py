"""Fixed-window counter stores for rate limiting.

Each store offers one atomic operation: increment the counter for a key,
resetting it first if its window has elapsed, and return the new count
together with the window's reset time (epoch seconds).
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class WindowCount:
    count: int
    window_reset_at: float


class CounterStore(ABC):
    """Abstract interface for atomic fixed-window counters."""

    @abstractmethod
    async def increment(self, key: str, window_seconds: int, now: float) -> WindowCount:
        """Atomically increment ``key`` and return the post-increment state."""

    @abstractmethod
    async def reset(self, key: str) -> None:
        """Forget the counter for ``key``."""


class InMemoryCounterStore(CounterStore):
    """Process-local counters guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._entries: dict[str, WindowCount] = {}
        self._lock = asyncio.Lock()

    async def increment(self, key: str, window_seconds: int, now: float) -> WindowCount:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or now >= entry.window_reset_at:
                entry = WindowCount(count=1, window_reset_at=now + window_seconds)
            else:
                entry = WindowCount(count=entry.count + 1, window_reset_at=entry.window_reset_at)
            self._entries[key] = entry
            return entry

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)


class DatabaseCounterStore(CounterStore):
    """Counters shared across processes via a single-statement upsert.

    Uses INSERT ... ON CONFLICT DO UPDATE ... RETURNING so the window reset
    and the increment happen in one atomic write.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def increment(self, key: str, window_seconds: int, now: float) -> WindowCount:
        reset_at = now + window_seconds
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(
                    "INSERT INTO rate_limit_counters (key, count, window_reset_at) "
                    "VALUES (:key, 1, :reset_at) "
                    "ON CONFLICT (key) DO UPDATE SET "
                    "count = CASE WHEN rate_limit_counters.window_reset_at <= :now "
                    "THEN 1 ELSE rate_limit_counters.count + 1 END, "
                    "window_reset_at = CASE WHEN rate_limit_counters.window_reset_at <= :now "
                    "THEN :reset_at ELSE rate_limit_counters.window_reset_at END "
                    "RETURNING count, window_reset_at"
                ),
                {"key": key, "now": now, "reset_at": reset_at},
            )
            row = result.fetchone()
        if row is None:
            return WindowCount(count=1, window_reset_at=reset_at)
        logger.debug("rate_limit_incremented", key=key, count=row[0])
        return WindowCount(count=int(row[0]), window_reset_at=float(row[1]))

    async def reset(self, key: str) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(
                text("DELETE FROM rate_limit_counters WHERE key = :key"), {"key": key}
            )
