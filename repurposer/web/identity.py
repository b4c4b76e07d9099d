"""Caller identity.

Authentication happens upstream. In single mode every request is the sentinel
user; in header mode the auth proxy supplies ``X-User-Id``.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, Request

from repurposer.config.settings import SENTINEL_USER_ID, get_settings
from repurposer.models.domain import UserRecord
from repurposer.web.dependencies import AppState, get_state

logger = structlog.get_logger(__name__)


async def get_current_user(
    request: Request,
    state: AppState = Depends(get_state),
) -> UserRecord:
    settings = get_settings()
    if settings.auth_mode == "single":
        user_id = SENTINEL_USER_ID
        email = "admin@localhost"
    else:
        user_id = request.headers.get("x-user-id", "").strip()
        email = request.headers.get("x-user-email", "")
        if not user_id:
            logger.warning("missing_user_header", path=request.url.path)
            raise HTTPException(status_code=401, detail="Not authenticated")

    structlog.contextvars.bind_contextvars(user_id=user_id)
    return await state.accounts.ensure_user(user_id, email=email)
