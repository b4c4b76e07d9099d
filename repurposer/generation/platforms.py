"""Per-platform generation and validation parameters."""

from __future__ import annotations

from dataclasses import dataclass

from repurposer.types import Platform


@dataclass(frozen=True, slots=True)
class PlatformRules:
    """Length bounds and model parameters for one platform."""

    name: str
    min_length: int
    max_length: int
    max_tokens: int
    temperature: float = 0.7
    hashtags: tuple[int, int] | None = None  # (min, max) recommended count


PLATFORM_RULES: dict[Platform, PlatformRules] = {
    Platform.LINKEDIN: PlatformRules(
        name="LinkedIn", min_length=1200, max_length=3000, max_tokens=900, hashtags=(3, 5)
    ),
    Platform.TWITTER: PlatformRules(
        name="Twitter/X", min_length=50, max_length=280, max_tokens=500, hashtags=(0, 3)
    ),
    Platform.EMAIL: PlatformRules(
        name="Email Newsletter", min_length=500, max_length=10_000, max_tokens=1400,
        temperature=0.6,
    ),
    Platform.INSTAGRAM: PlatformRules(
        name="Instagram", min_length=500, max_length=2200, max_tokens=900, hashtags=(15, 25)
    ),
    Platform.FACEBOOK: PlatformRules(
        name="Facebook", min_length=50, max_length=5000, max_tokens=1200, hashtags=(0, 5)
    ),
    Platform.TIKTOK: PlatformRules(
        name="TikTok", min_length=10, max_length=150, max_tokens=500, hashtags=(3, 5)
    ),
    Platform.YOUTUBE: PlatformRules(
        name="YouTube", min_length=100, max_length=5000, max_tokens=1500
    ),
}


def get_platform_rules(platform: Platform | str) -> PlatformRules:
    return PLATFORM_RULES[Platform(platform)]
