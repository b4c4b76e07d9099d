"""Unit tests for prompt assembly and platform content checks."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from repurposer.generation.prompts import (
    SYSTEM_PROMPT,
    PromptContext,
    build_prompt,
    previous_posts_summary,
    series_role,
    tone_instruction,
)
from repurposer.generation.validation import validate_platform_content
from repurposer.models.domain import BrandVoiceRecord
from repurposer.types import Platform, PostTone

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestPrompts:
    @pytest.mark.parametrize(
        ("index", "total", "role"),
        [(1, 1, None), (1, 3, "teaser"), (2, 3, "context"), (3, 3, "conclusion"), (2, 2, "conclusion")],
    )
    def test_series_role(self, index: int, total: int, role: str | None) -> None:
        assert series_role(index, total) == role

    def test_neutral_tone_adds_nothing(self) -> None:
        assert tone_instruction(PostTone.NEUTRAL) == ""
        assert tone_instruction(None) == ""
        assert "witty" in tone_instruction("witty").lower()

    def test_prompt_names_platform_and_source(self) -> None:
        system, user = build_prompt(
            PromptContext(platform=Platform.TWITTER, source_text="We raised a seed round.")
        )
        assert system == SYSTEM_PROMPT
        assert user.startswith("Platform: Twitter/X")
        assert "50-280 characters" in user
        assert "We raised a seed round." in user
        assert "series" not in user

    def test_prompt_includes_brand_voice(self) -> None:
        voice = BrandVoiceRecord(
            id="bv1",
            user_id="u1",
            name="Crisp",
            vocabulary=["ship", "build"],
            avoid_vocabulary=["synergy"],
            updated_at=datetime(2025, 1, 1, tzinfo=UTC),
        )
        _, user = build_prompt(
            PromptContext(platform=Platform.LINKEDIN, source_text="x", brand_voice=voice)
        )
        assert "brand voice 'Crisp'" in user
        assert "ship, build" in user
        assert "Never use: synergy" in user

    def test_previous_posts_are_clipped_and_ordered(self) -> None:
        summary = previous_posts_summary(((2, "b" * 300), (1, "  short first post  ")))
        lines = summary.split("\n\n")
        assert lines[0] == "PREVIOUS POSTS IN THIS SERIES:\nPost 1: short first post"
        assert lines[1] == f"Post 2: {'b' * 220}..."
        assert summary.endswith("without repeating them.")

    def test_previous_posts_follow_series_role(self) -> None:
        _, user = build_prompt(
            PromptContext(
                platform=Platform.LINKEDIN,
                source_text="Source",
                series_index=2,
                series_total=3,
                previous_posts=((1, "The teaser"),),
            )
        )
        assert user.index("post 2 of 3") < user.index("Post 1: The teaser")
        assert user.index("Post 1: The teaser") < user.index("Source material")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestValidation:
    def test_good_tweet_passes(self) -> None:
        content = "We just shipped offline mode for every plan. Try it today and tell us. #launch"
        result = validate_platform_content(content, Platform.TWITTER)
        assert result.is_valid, result.messages

    def test_tweet_too_long(self) -> None:
        result = validate_platform_content("word " * 80, "twitter")
        assert not result.is_valid
        assert any("too long" in m for m in result.messages)

    def test_hashtag_bounds(self) -> None:
        result = validate_platform_content("#a #b #c #d " + "x" * 60, Platform.TWITTER)
        assert any("hashtags" in m for m in result.messages)

    def test_spam_and_script_flagged(self) -> None:
        content = "Click here now for FREE money <script>alert(1)</script> " + "x" * 60
        result = validate_platform_content(content, Platform.FACEBOOK)
        assert "Content contains potential spam indicators." in result.messages
        assert "Content contains prohibited elements for security reasons." in result.messages

    def test_too_many_exclamations_on_twitter(self) -> None:
        content = "Big news today!!! We shipped the thing everyone asked for, finally."
        result = validate_platform_content(content, Platform.TWITTER)
        assert any("exclamation" in m for m in result.messages)

    def test_excessive_caps(self) -> None:
        content = "THIS LAUNCH WILL CHANGE EVERYTHING about how teams work " * 2
        result = validate_platform_content(content, Platform.FACEBOOK)
        assert "Content contains excessive capitalization." in result.messages
