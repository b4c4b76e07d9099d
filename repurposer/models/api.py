"""API request/response schemas for FastAPI endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from repurposer.types import Platform, PostTone


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class SlotRef(CamelModel):
    platform: Platform
    series_index: int = Field(ge=1)


class BulkGenerateRequest(CamelModel):
    project_id: str
    platforms: list[str] = []
    source_content: str
    options: dict[str, Any] | None = None
    brand_voice_id: str | None = None
    post_tone_override: str | None = None
    regenerate_series_for_platform: str | None = None
    regenerate_from_index: SlotRef | None = None


class RegenerateOutputRequest(CamelModel):
    project_id: str
    source_content: str
    post_tone_override: str | None = None


class GenerationItem(CamelModel):
    platform: Platform
    series_index: int
    content: str
    success: bool
    error: str | None = None
    output_id: str | None = None
    provenance: str | None = None


class BulkGenerateResponse(CamelModel):
    successful: list[GenerationItem]
    failed: list[GenerationItem]
    total_requested: int


class VariationsRequest(CamelModel):
    platform: str
    source_content: str
    count: int = 1
    post_tone_override: str | None = None


class VariationItem(CamelModel):
    content: str
    provenance: str


class VariationsResponse(CamelModel):
    variations: list[VariationItem]


# ---------------------------------------------------------------------------
# Projects and outputs
# ---------------------------------------------------------------------------


class ProjectCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    source_content: str = ""
    platforms: list[Platform] = []
    posts_per_platform: int | None = Field(default=None, ge=1, le=3)
    posts_per_platform_by_platform: dict[Platform, int] = {}
    post_tone: PostTone | None = None


class ProjectUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    source_content: str | None = None
    platforms: list[Platform] | None = None
    posts_per_platform: int | None = Field(default=None, ge=1, le=3)
    posts_per_platform_by_platform: dict[Platform, int] | None = None
    post_tone: PostTone | None = None


class ProjectResponse(CamelModel):
    id: str
    title: str
    source_content: str
    platforms: list[Platform]
    posts_per_platform: int | None
    posts_per_platform_by_platform: dict[str, int]
    post_tone: PostTone | None
    created_at: datetime
    updated_at: datetime


class OutputResponse(CamelModel):
    id: str
    project_id: str
    platform: Platform
    series_index: int
    content: str
    is_edited: bool
    original_content: str | None
    generation_metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class OutputUpdate(CamelModel):
    content: str = Field(max_length=20_000)


# ---------------------------------------------------------------------------
# Subscription and audio
# ---------------------------------------------------------------------------


class AudioLimits(CamelModel):
    audio_minutes_per_period: int
    max_audio_file_size_mb: int | None


class FeaturesResponse(CamelModel):
    plan: str
    plan_type: str
    can_use_audio: bool
    can_use_series: bool
    can_use_post_tone: bool
    can_use_brand_voice: bool
    max_posts_per_platform: int
    max_projects: int
    max_characters_per_content: int
    max_outputs_per_project: int
    max_variations_per_generation: int
    audio_limits: AudioLimits | None = None


class TranscriptionResponse(CamelModel):
    text: str
    duration_minutes: float
    language: str | None = None
    minutes_recorded: bool
