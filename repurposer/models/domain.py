"""Inter-module data contracts (not persisted directly)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from repurposer.types import Platform, PostTone


class UserRecord(BaseModel):
    id: str
    email: str = ""
    created_at: datetime


class SubscriptionRecord(BaseModel):
    user_id: str
    plan: str = "free"
    status: str = "active"
    current_period_end: datetime | None = None
    audio_minutes_used_this_period: float = 0.0
    audio_minutes_limit: float | None = None
    audio_minutes_reset_at: datetime | None = None


class BrandVoiceRecord(BaseModel):
    id: str
    user_id: str
    name: str
    tone: str = ""
    style: str = ""
    personality: list[str] = []
    sentence_structure: str = ""
    vocabulary: list[str] = []
    avoid_vocabulary: list[str] = []
    examples: list[str] = []
    is_active: bool = False
    updated_at: datetime


class ProjectRecord(BaseModel):
    id: str
    user_id: str
    title: str
    source_content: str = ""
    platforms: list[Platform] = []
    posts_per_platform: int | None = None
    posts_per_platform_by_platform: dict[str, int] = {}
    post_tone: PostTone | None = None
    created_at: datetime
    updated_at: datetime


class OutputRecord(BaseModel):
    id: str
    project_id: str
    platform: Platform
    series_index: int = 1
    content: str = ""
    is_edited: bool = False
    original_content: str | None = None
    generation_metadata: dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

    @property
    def slot_key(self) -> tuple[str, int]:
        return (str(self.platform), self.series_index)
