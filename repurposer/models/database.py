"""SQLModel database table models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Column, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Return current UTC time as naive datetime for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _new_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    email: str = Field(default="", index=True)
    created_at: datetime = Field(default_factory=_utc_now)


class Subscription(SQLModel, table=True):
    __tablename__ = "subscriptions"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    plan: str = Field(default="free")  # free | pro | max | enterprise
    status: str = Field(default="active")  # active | trialing | canceled | past_due
    current_period_end: datetime | None = None
    audio_minutes_used_this_period: float = Field(default=0.0)
    audio_minutes_limit: float | None = None
    audio_minutes_reset_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class BrandVoice(SQLModel, table=True):
    __tablename__ = "brand_voices"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    name: str
    tone: str = ""
    style: str = ""
    personality: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    sentence_structure: str = ""
    vocabulary: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    avoid_vocabulary: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    examples: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = Field(default=False)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    title: str
    source_content: str = Field(default="", sa_column=Column(Text))
    platforms: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    posts_per_platform: int | None = None
    posts_per_platform_by_platform: dict[str, int] = Field(
        default_factory=dict, sa_column=Column(JSON)
    )
    post_tone: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Output(SQLModel, table=True):
    __tablename__ = "outputs"
    __table_args__ = (
        UniqueConstraint("project_id", "platform", "series_index", name="uq_output_slot"),
    )

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    platform: str
    series_index: int = Field(default=1)
    content: str = Field(default="", sa_column=Column(Text))
    is_edited: bool = Field(default=False)
    original_content: str | None = Field(default=None, sa_column=Column(Text))
    generation_metadata: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class CacheEntry(SQLModel, table=True):
    __tablename__ = "cache_entries"

    key: str = Field(primary_key=True)
    value: str = Field(sa_column=Column(Text, nullable=False))
    expires_at: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=_utc_now)


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(index=True)
    project_id: str | None = Field(default=None, index=True)
    action: str = Field(index=True)
    details_json: str = Field(default="{}", sa_column=Column(Text, nullable=False))
    request_id: str = ""
    created_at: datetime = Field(default_factory=_utc_now)


class RateLimitCounter(SQLModel, table=True):
    __tablename__ = "rate_limit_counters"

    key: str = Field(primary_key=True)
    count: int = Field(default=0)
    window_reset_at: float = Field(default=0.0)  # epoch seconds
