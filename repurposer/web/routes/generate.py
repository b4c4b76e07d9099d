"""Generation API routes: bulk generate and variations."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, Depends

from repurposer.models.api import (
    BulkGenerateRequest,
    BulkGenerateResponse,
    GenerationItem,
    VariationItem,
    VariationsRequest,
    VariationsResponse,
)
from repurposer.web.dependencies import AppState, get_state
from repurposer.web.identity import get_current_user

if TYPE_CHECKING:
    from repurposer.generation.orchestrator import BulkGenerationResult
    from repurposer.models.domain import UserRecord

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/generate", tags=["generate"])


def to_response(result: BulkGenerationResult) -> BulkGenerateResponse:
    return BulkGenerateResponse(
        successful=[GenerationItem(**asdict(item)) for item in result.successful],
        failed=[GenerationItem(**asdict(item)) for item in result.failed],
        total_requested=result.total_requested,
    )


@router.post("", response_model=BulkGenerateResponse)
async def bulk_generate(
    body: BulkGenerateRequest,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> BulkGenerateResponse:
    from_index = None
    if body.regenerate_from_index is not None:
        from_index = (body.regenerate_from_index.platform, body.regenerate_from_index.series_index)

    result = await state.generation.bulk_generate(
        user.id,
        project_id=body.project_id,
        platforms=list(body.platforms),
        source_content=body.source_content,
        options=body.options,
        brand_voice_id=body.brand_voice_id,
        post_tone_override=body.post_tone_override,
        regenerate_series_for_platform=body.regenerate_series_for_platform,
        regenerate_from_index=from_index,
    )
    return to_response(result)


@router.post("/variations", response_model=VariationsResponse)
async def generate_variations(
    body: VariationsRequest,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> VariationsResponse:
    variations = await state.generation.generate_variations(
        user.id,
        platform=body.platform,
        source_content=body.source_content,
        count=body.count,
        post_tone_override=body.post_tone_override,
    )
    return VariationsResponse(
        variations=[VariationItem(content=v.content, provenance=v.provenance) for v in variations]
    )
