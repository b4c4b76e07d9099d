"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError as FastAPIValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repurposer.config.logging import setup_logging
from repurposer.config.settings import get_settings
from repurposer.exceptions import RateLimitedError, RepurposerError
from repurposer.web.middleware import RequestIDMiddleware
from repurposer.web.routes.generate import router as generate_router
from repurposer.web.routes.outputs import router as outputs_router
from repurposer.web.routes.projects import router as projects_router
from repurposer.web.routes.subscription import router as subscription_router
from repurposer.web.routes.transcribe import router as transcribe_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if not get_settings().use_database:
        yield
        return

    from repurposer.storage.database import dispose_engine, init_db

    await init_db()
    logger.info("database_initialized")
    try:
        yield
    finally:
        await dispose_engine()


def error_response(exc: RepurposerError) -> JSONResponse:
    """Render a domain error as ``{error, code, details}``."""
    content: dict[str, object] = {"error": exc.message, "code": exc.code}
    if exc.details:
        content["details"] = exc.details
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitedError):
        content["retryAfterSeconds"] = exc.retry_after_seconds
        headers["Retry-After"] = str(exc.retry_after_seconds)
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)

    app = FastAPI(
        title="Repurposer",
        description="Turn one piece of content into platform-ready posts",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(RepurposerError)
    async def repurposer_error_handler(request: Request, exc: RepurposerError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "request_rejected",
            path=request.url.path,
            code=exc.code,
            status_code=exc.status_code,
            error=exc.message,
        )
        return error_response(exc)

    @app.exception_handler(FastAPIValidationError)
    async def validation_error_handler(
        request: Request, exc: FastAPIValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "code": "VALIDATION_ERROR",
                "details": {"errors": jsonable_errors(exc)},
            },
        )

    # Middleware (order matters: last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID", "X-User-Id"],
        expose_headers=["Retry-After", "X-Request-ID"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/api/health")
    async def health_check() -> dict[str, object]:
        from repurposer.web.health import check_health

        return await check_health()

    for router in (
        projects_router,
        generate_router,
        outputs_router,
        subscription_router,
        transcribe_router,
    ):
        app.include_router(router)

    logger.info("app_created")
    return app


def jsonable_errors(exc: FastAPIValidationError) -> list[dict[str, object]]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
