"""Abstract repository interfaces consumed by the generation core and routes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from repurposer.models.domain import (
        BrandVoiceRecord,
        OutputRecord,
        ProjectRecord,
        SubscriptionRecord,
        UserRecord,
    )


@dataclass(frozen=True, slots=True)
class CacheStats:
    total: int
    active: int
    expired: int


class ProjectRepository(ABC):
    """Projects are always addressed together with their owner."""

    @abstractmethod
    async def create(self, user_id: str, title: str, **fields: Any) -> ProjectRecord:
        """Create a project owned by ``user_id``."""

    @abstractmethod
    async def get(self, project_id: str, user_id: str) -> ProjectRecord | None:
        """Return the project if it exists and belongs to ``user_id``."""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[ProjectRecord]:
        """All of a user's projects, newest first."""

    @abstractmethod
    async def count_for_user(self, user_id: str) -> int:
        """Live project count used for quota checks."""

    @abstractmethod
    async def update(self, project_id: str, user_id: str, **updates: Any) -> ProjectRecord | None:
        """Apply field updates; returns None when missing or not owned."""

    @abstractmethod
    async def delete(self, project_id: str, user_id: str) -> bool:
        """Delete a project and its outputs."""


class OutputRepository(ABC):
    """Outputs are keyed by (project_id, platform, series_index)."""

    @abstractmethod
    async def upsert(
        self,
        project_id: str,
        platform: str,
        series_index: int,
        *,
        content: str,
        generation_metadata: dict[str, Any],
        succeeded: bool,
        record_original: bool = True,
    ) -> OutputRecord:
        """Create or overwrite the output for one slot.

        A successful write clears ``is_edited``. With ``record_original`` it also
        fills ``original_content`` if that was never set. A failed write stores
        empty content.
        """

    @abstractmethod
    async def get_for_user(self, output_id: str, user_id: str) -> OutputRecord | None:
        """Point lookup joined through the owning project."""

    @abstractmethod
    async def list_for_project(self, project_id: str) -> list[OutputRecord]:
        """Outputs ordered by series_index asc, platform asc."""

    @abstractmethod
    async def update_content(self, output_id: str, content: str) -> OutputRecord | None:
        """Record a user edit."""

    @abstractmethod
    async def revert_content(self, output_id: str) -> OutputRecord | None:
        """Restore ``original_content`` and clear ``is_edited``."""


class AccountRepository(ABC):
    """Users, subscriptions and brand voices."""

    @abstractmethod
    async def get_user(self, user_id: str) -> UserRecord | None: ...

    @abstractmethod
    async def ensure_user(self, user_id: str, email: str = "") -> UserRecord:
        """Return the user, creating it on first sight."""

    @abstractmethod
    async def get_subscription(self, user_id: str) -> SubscriptionRecord | None: ...

    @abstractmethod
    async def save_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        """Insert or replace the user's subscription."""

    @abstractmethod
    async def add_audio_minutes(self, user_id: str, minutes: float, now: datetime) -> bool:
        """Atomically add minutes if ``now`` is still inside the stored period.

        Returns False (and changes nothing) once the period has ended.
        """

    @abstractmethod
    async def get_brand_voice(self, brand_voice_id: str, user_id: str) -> BrandVoiceRecord | None:
        ...

    @abstractmethod
    async def get_active_brand_voice(self, user_id: str) -> BrandVoiceRecord | None: ...

    @abstractmethod
    async def save_brand_voice(self, brand_voice: BrandVoiceRecord) -> BrandVoiceRecord: ...


class AuditRepository(ABC):
    """Append-only audit trail."""

    @abstractmethod
    async def append(
        self,
        *,
        user_id: str,
        action: str,
        details_json: str,
        project_id: str | None = None,
        request_id: str = "",
    ) -> None:
        """Write one audit entry."""


class CacheBackend(ABC):
    """Key/value store with expiry for generated text."""

    @abstractmethod
    async def get(self, key: str, now: datetime) -> str | None:
        """Return a live value; expired entries are deleted and reported as missing."""

    @abstractmethod
    async def set(self, key: str, value: str, expires_at: datetime) -> None:
        """Insert or replace an entry."""

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``."""

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete expired entries and return how many were removed."""

    @abstractmethod
    async def stats(self, now: datetime) -> CacheStats: ...
