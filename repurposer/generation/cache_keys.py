"""Deterministic cache keys for generation results.

Keys are namespaced by project (``gen:{project_id}:``) so every entry for a
project can be dropped with one prefix delete.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

CACHE_NAMESPACE = "gen"


def content_hash(text: str) -> str:
    """SHA-256 hex digest of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def options_hash(options: dict[str, Any] | None) -> str:
    """Hash of the canonical JSON form of a generation options mapping."""
    canonical = json.dumps(options or {}, sort_keys=True, separators=(",", ":"), default=str)
    return content_hash(canonical)


def project_cache_prefix(project_id: str) -> str:
    return f"{CACHE_NAMESPACE}:{project_id}:"


@dataclass(frozen=True)
class CacheKeyParams:
    """Every input that can change a generated post."""

    user_id: str
    project_id: str
    step: str
    model: str
    platform: str
    source_text: str
    options: dict[str, Any] = field(default_factory=dict)
    brand_voice_id: str | None = None
    brand_voice_updated_at: datetime | None = None
    tone: str | None = None
    series_index: int | None = None
    series_total: int | None = None


def build_generation_cache_key(params: CacheKeyParams) -> str:
    """Return ``gen:{project_id}:{digest}`` for ``params``.

    Field order is fixed; absent optional fields hash as ``none``, a missing
    tone as ``neutral`` and missing series positions as ``1``.
    """
    parts = [
        params.user_id,
        params.project_id,
        params.step,
        params.model,
        params.platform,
        content_hash(params.source_text),
        options_hash(params.options),
        params.brand_voice_id or "none",
        params.brand_voice_updated_at.isoformat() if params.brand_voice_updated_at else "none",
        params.tone or "neutral",
        str(params.series_index or 1),
        str(params.series_total or 1),
    ]
    digest = content_hash(json.dumps(parts, separators=(",", ":")))
    return f"{project_cache_prefix(params.project_id)}{digest}"
