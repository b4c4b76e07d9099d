"""Audio transcription route with audio-minute quota."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, Depends, File, UploadFile

from repurposer.billing.plans import get_plan_limits
from repurposer.exceptions import (
    PlanRequiredError,
    QuotaExceededError,
    RequestValidationError,
    TranscriptionError,
)
from repurposer.models.api import TranscriptionResponse
from repurposer.types import RouteCategory
from repurposer.web.dependencies import AppState, get_state
from repurposer.web.identity import get_current_user

if TYPE_CHECKING:
    from repurposer.models.domain import UserRecord

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/transcribe", tags=["transcribe"])

_BYTES_PER_MB = 1024 * 1024


@router.post("", response_model=TranscriptionResponse)
async def transcribe_audio(
    file: UploadFile = File(...),
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> TranscriptionResponse:
    plan = await state.quota.resolve_plan(user.id)
    await state.rate_limiter.enforce(user.id, RouteCategory.TRANSCRIBE, plan)

    audio = await state.quota.check_audio_quota(user.id)
    if not audio.allowed:
        raise PlanRequiredError(
            "Audio transcription requires a plan with audio support",
            details={"plan": str(plan)},
        )

    data = await file.read()
    if not data:
        raise RequestValidationError("Audio file is empty")
    max_mb = get_plan_limits(plan).max_audio_file_size_mb
    if max_mb is not None and len(data) > max_mb * _BYTES_PER_MB:
        raise QuotaExceededError(
            f"Audio file exceeds {max_mb} MB for your plan",
            details={"size_bytes": len(data), "limit_mb": max_mb},
        )

    if state.transcriber is None:
        raise TranscriptionError("Transcription is not configured")

    transcript = await state.transcriber.transcribe(file.filename or "audio", data)
    minutes = transcript.duration_minutes
    if not audio.can_add_minutes(minutes):
        raise QuotaExceededError(
            "Not enough audio minutes left this period",
            details={
                "used_minutes": audio.used_minutes,
                "limit_minutes": audio.limit_minutes,
                "requested_minutes": round(minutes, 2),
            },
        )

    recorded = await state.quota.record_audio_usage(user.id, minutes)
    await state.audit_logger.log(
        user_id=user.id,
        action="transcribe",
        details={"minutes": round(minutes, 2), "recorded": recorded},
    )
    logger.info("audio_transcribed", user_id=user.id, minutes=round(minutes, 2))
    return TranscriptionResponse(
        text=transcript.text,
        duration_minutes=minutes,
        language=transcript.language,
        minutes_recorded=recorded,
    )
