"""Prompt assembly for platform posts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from repurposer.generation.platforms import get_platform_rules
from repurposer.types import Platform, PostTone

if TYPE_CHECKING:
    from repurposer.models.domain import BrandVoiceRecord

SYSTEM_PROMPT = (
    "You are an expert social media copywriter. You rewrite source material into "
    "native posts for a single platform. Reply with the post text only, with no "
    "preamble and no markdown code fences."
)

_PLATFORM_GUIDANCE: dict[Platform, str] = {
    Platform.LINKEDIN: (
        "Open with a hook (a question or a bold claim), use short paragraphs, "
        "close with a question for the reader and 3-5 relevant hashtags."
    ),
    Platform.TWITTER: "Write one tweet of at most 280 characters with 1-3 hashtags.",
    Platform.EMAIL: (
        "Start with a subject line on its own line, then the body. "
        "End with a clear call to action."
    ),
    Platform.INSTAGRAM: (
        "Write an engaging caption with line breaks and emojis, "
        "followed by 15-25 hashtags."
    ),
    Platform.FACEBOOK: "Write a conversational post that ends with an engagement prompt.",
    Platform.TIKTOK: (
        "Write a caption of at most 150 characters with 3-5 hashtags "
        "and an engagement prompt."
    ),
    Platform.YOUTUBE: (
        "Write a video description with a summary, timestamps and a subscribe call to action."
    ),
}

_TONE_INSTRUCTIONS: dict[PostTone, str] = {
    PostTone.PROFESSIONAL: "Professional and authoritative: formal but approachable, no slang.",
    PostTone.FRIENDLY: "Friendly and conversational: 'you' and 'we' language, warm.",
    PostTone.SASSY: "Bold and sassy: sharp, punchy sentences; edgy but never offensive.",
    PostTone.POLITE: "Polite and respectful: courteous, softened statements.",
    PostTone.AUTHORITATIVE: "Authoritative and expert: confident, definitive, data-backed.",
    PostTone.WITTY: "Witty and clever: wordplay and smart humor without losing clarity.",
    PostTone.INSPIRATIONAL: "Inspirational and uplifting: aspirational, positive framing.",
    PostTone.CASUAL: "Casual and laid-back: contractions, short easy sentences.",
    PostTone.URGENT: "Urgent and action-oriented: imperative mood, time-sensitive language.",
}

_SERIES_ROLES = {
    "teaser": (
        "This is post {index} of {total} in a series. Create curiosity: present the "
        "problem without revealing the conclusion and end with a cliffhanger."
    ),
    "context": (
        "This is post {index} of {total} in a series. Build on the previous post with "
        "deeper context and insight, but keep the final conclusion for the last post."
    ),
    "conclusion": (
        "This is the final post ({index} of {total}) in a series. Briefly recap, deliver "
        "the full conclusion and finish with a strong call to action."
    ),
}


@dataclass(frozen=True)
class PromptContext:
    platform: Platform
    source_text: str
    series_index: int = 1
    series_total: int = 1
    tone: PostTone | None = None
    brand_voice: BrandVoiceRecord | None = None
    # (series_index, content) of already persisted earlier posts in the series
    previous_posts: tuple[tuple[int, str], ...] = ()


PREVIOUS_POST_EXCERPT = 220


def series_role(series_index: int, series_total: int) -> str | None:
    """teaser / context / conclusion, or None for a standalone post."""
    if series_total <= 1:
        return None
    if series_index == 1:
        return "teaser"
    if series_index >= series_total:
        return "conclusion"
    return "context"


def tone_instruction(tone: PostTone | str | None) -> str:
    if not tone or tone == PostTone.NEUTRAL:
        return ""
    return _TONE_INSTRUCTIONS.get(PostTone(tone), "")


def brand_voice_instruction(voice: BrandVoiceRecord) -> str:
    lines = [f"Write in the brand voice '{voice.name}'."]
    if voice.tone:
        lines.append(f"Tone: {voice.tone}")
    if voice.style:
        lines.append(f"Style: {voice.style}")
    if voice.personality:
        lines.append(f"Personality: {', '.join(voice.personality)}")
    if voice.sentence_structure:
        lines.append(f"Sentence structure: {voice.sentence_structure}")
    if voice.vocabulary:
        lines.append(f"Preferred vocabulary: {', '.join(voice.vocabulary)}")
    if voice.avoid_vocabulary:
        lines.append(f"Never use: {', '.join(voice.avoid_vocabulary)}")
    for example in voice.examples[:3]:
        lines.append(f"Example: {example}")
    return "\n".join(lines)


def previous_posts_summary(posts: tuple[tuple[int, str], ...]) -> str:
    lines = []
    for index, content in sorted(posts):
        text = content.strip()
        excerpt = text[:PREVIOUS_POST_EXCERPT].strip()
        if len(text) > PREVIOUS_POST_EXCERPT:
            excerpt += "..."
        lines.append(f"Post {index}: {excerpt}")
    return (
        "PREVIOUS POSTS IN THIS SERIES:\n"
        + "\n\n".join(lines)
        + "\n\nYour post should build on these without repeating them."
    )


def build_prompt(ctx: PromptContext) -> tuple[str, str]:
    """Return ``(system_prompt, user_prompt)`` for one slot."""
    rules = get_platform_rules(ctx.platform)
    sections = [
        f"Platform: {rules.name}",
        f"Length: {rules.min_length}-{rules.max_length} characters.",
        _PLATFORM_GUIDANCE[ctx.platform],
    ]

    role = series_role(ctx.series_index, ctx.series_total)
    if role:
        sections.append(
            _SERIES_ROLES[role].format(index=ctx.series_index, total=ctx.series_total)
        )

    if ctx.previous_posts:
        sections.append(previous_posts_summary(ctx.previous_posts))

    tone = tone_instruction(ctx.tone)
    if tone:
        sections.append(f"Tone: {tone}")

    if ctx.brand_voice is not None:
        sections.append(brand_voice_instruction(ctx.brand_voice))

    sections.append(f"Source material:\n\"\"\"\n{ctx.source_text}\n\"\"\"")
    return SYSTEM_PROMPT, "\n\n".join(sections)
