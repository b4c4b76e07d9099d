"""Subscription API routes: plan features and quota probe."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from repurposer.models.api import FeaturesResponse
from repurposer.web.dependencies import AppState, get_state
from repurposer.web.identity import get_current_user

if TYPE_CHECKING:
    from repurposer.models.domain import UserRecord

router = APIRouter(prefix="/api/subscription", tags=["subscription"])


@router.get("/features", response_model=FeaturesResponse)
async def get_features(
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> FeaturesResponse:
    probe = await state.quota.quota_probe(user.id)
    return FeaturesResponse.model_validate(probe)
