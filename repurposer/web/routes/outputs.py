"""Output API routes: user edits, revert and single-output regeneration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, Depends

from repurposer.exceptions import NotFoundError, RequestValidationError
from repurposer.models.api import (
    BulkGenerateResponse,
    OutputResponse,
    OutputUpdate,
    RegenerateOutputRequest,
)
from repurposer.types import RouteCategory
from repurposer.utils.sanitize import sanitize_content
from repurposer.web.dependencies import AppState, get_state
from repurposer.web.identity import get_current_user
from repurposer.web.routes.generate import to_response

if TYPE_CHECKING:
    from repurposer.models.domain import UserRecord

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/outputs", tags=["outputs"])


@router.patch("/{output_id}", response_model=OutputResponse)
async def update_output(
    output_id: str,
    body: OutputUpdate,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> OutputResponse:
    await state.rate_limiter.enforce(user.id, RouteCategory.OUTPUT_UPDATE)
    existing = await state.outputs.get_for_user(output_id, user.id)
    if existing is None:
        raise NotFoundError("Output not found", details={"output_id": output_id})

    output = await state.outputs.update_content(output_id, sanitize_content(body.content))
    if output is None:
        raise NotFoundError("Output not found", details={"output_id": output_id})
    await state.audit_logger.log(
        user_id=user.id,
        action="output_edit",
        project_id=output.project_id,
        details={"output_id": output_id, "platform": str(output.platform)},
    )
    return OutputResponse.model_validate(output.model_dump())


@router.post("/{output_id}/revert", response_model=OutputResponse)
async def revert_output(
    output_id: str,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> OutputResponse:
    """Throw away user edits and restore the first generated text."""
    await state.rate_limiter.enforce(user.id, RouteCategory.OUTPUT_UPDATE)
    existing = await state.outputs.get_for_user(output_id, user.id)
    if existing is None:
        raise NotFoundError("Output not found", details={"output_id": output_id})
    if existing.original_content is None:
        raise RequestValidationError(
            "No original content to revert to", details={"output_id": output_id}
        )

    output = await state.outputs.revert_content(output_id)
    if output is None:
        raise NotFoundError("Output not found", details={"output_id": output_id})
    await state.audit_logger.log(
        user_id=user.id,
        action="output_revert",
        project_id=output.project_id,
        details={"output_id": output_id, "platform": str(output.platform)},
    )
    return OutputResponse.model_validate(output.model_dump())


@router.post("/{output_id}/regenerate", response_model=BulkGenerateResponse)
async def regenerate_output(
    output_id: str,
    body: RegenerateOutputRequest,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> BulkGenerateResponse:
    result = await state.generation.regenerate_output(
        user.id,
        project_id=body.project_id,
        output_id=output_id,
        source_content=body.source_content,
        post_tone_override=body.post_tone_override,
    )
    return to_response(result)
