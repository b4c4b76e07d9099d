"""Process-wide async engine for the PostgreSQL-backed repositories."""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

from repurposer.config.settings import get_settings


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    # Bulk generation holds one connection per in-flight slot write
    pool_size = max(5, settings.generation_concurrency * 2)
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=pool_size,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create missing tables for projects, outputs, subscriptions, cache, audit and counters."""
    import repurposer.models.database  # noqa: F401  (registers table metadata)

    target = engine or get_engine()
    async with target.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_engine.cache_clear()
