"""Health probe: reports the LLM setup and, when enabled, database reachability."""

from __future__ import annotations

import structlog

from repurposer.config.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


def _llm_status(settings: Settings) -> str:
    if settings.llm_provider == "ollama":
        return "configured"
    key = settings.openai_api_key if settings.llm_provider == "openai" else settings.anthropic_api_key
    return "configured" if key else "templates_only"


async def check_health() -> dict[str, object]:
    settings = get_settings()
    report: dict[str, object] = {
        "status": "healthy",
        "version": "0.1.0",
        "auth_mode": settings.auth_mode,
        "llm_provider": settings.llm_provider,
        "llm": _llm_status(settings),
        "database": "disabled",
    }
    if not settings.use_database:
        return report

    from sqlalchemy import text

    from repurposer.storage.database import get_engine

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("health_db_probe_failed", error=str(exc))
        report.update(database="unavailable", status="degraded")
    else:
        report["database"] = "connected"
    return report
