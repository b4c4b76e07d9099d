"""Platform content checks.

Validation is advisory: messages are stored with the output's generation
metadata and never fail a slot.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from repurposer.generation.platforms import get_platform_rules
from repurposer.types import Platform

_HASHTAG = re.compile(r"#\w+")
_SPAM_PATTERNS = [
    re.compile(r"free\s+money", re.IGNORECASE),
    re.compile(r"click\s+here\s+now", re.IGNORECASE),
    re.compile(r"urgent\s+action\s+required", re.IGNORECASE),
    re.compile(r"congratulations,\s+you\s+won", re.IGNORECASE),
    re.compile(r"viagra|casino|lottery", re.IGNORECASE),
]
_PROHIBITED = [
    re.compile(r"<script\b", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
]
_MAX_EXCLAMATIONS = {Platform.LINKEDIN: 3, Platform.TWITTER: 2}
_MAX_CAPS_RATIO = 0.3


@dataclass
class ValidationResult:
    is_valid: bool = True
    messages: list[str] = field(default_factory=list)

    def fail(self, message: str) -> None:
        self.is_valid = False
        self.messages.append(message)


def _check_length(content: str, platform: Platform, result: ValidationResult) -> None:
    rules = get_platform_rules(platform)
    if len(content) < rules.min_length:
        result.fail(
            f"Content too short for {platform}. Minimum {rules.min_length} characters required."
        )
    elif len(content) > rules.max_length:
        result.fail(
            f"Content too long for {platform}. Maximum {rules.max_length} characters allowed."
        )


def _check_hashtags(content: str, platform: Platform, result: ValidationResult) -> None:
    bounds = get_platform_rules(platform).hashtags
    if bounds is None:
        return
    low, high = bounds
    count = len(_HASHTAG.findall(content))
    if count < low or count > high:
        result.fail(
            f"{platform} content should include {low}-{high} hashtags, found {count}."
        )


def _check_quality(content: str, platform: Platform, result: ValidationResult) -> None:
    if any(p.search(content) for p in _SPAM_PATTERNS):
        result.fail("Content contains potential spam indicators.")

    limit = _MAX_EXCLAMATIONS.get(platform)
    if limit is not None and content.count("!") > limit:
        result.fail(f"{platform} content should use at most {limit} exclamation marks.")

    words = content.split()
    if words:
        shouting = [w for w in words if len(w) > 3 and w == w.upper() and w.isalpha()]
        if len(shouting) / len(words) > _MAX_CAPS_RATIO:
            result.fail("Content contains excessive capitalization.")


def _check_safety(content: str, result: ValidationResult) -> None:
    if any(p.search(content) for p in _PROHIBITED):
        result.fail("Content contains prohibited elements for security reasons.")


def validate_platform_content(content: str, platform: Platform | str) -> ValidationResult:
    """Run length, hashtag, quality and safety checks for ``platform``."""
    target = Platform(platform)
    result = ValidationResult()
    _check_length(content, target, result)
    _check_hashtags(content, target, result)
    _check_quality(content, target, result)
    _check_safety(content, result)
    return result
