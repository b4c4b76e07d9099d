"""Enums and type aliases for Repurposer."""

from enum import StrEnum


class Plan(StrEnum):
    TRIAL = "trial"
    FREE = "free"
    PRO = "pro"
    MAX = "max"
    ENTERPRISE = "enterprise"


class PlanType(StrEnum):
    TEXT = "text"
    TEXT_AUDIO = "text_audio"


class Platform(StrEnum):
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    EMAIL = "email"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"


class PostTone(StrEnum):
    NEUTRAL = "neutral"
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    SASSY = "sassy"
    POLITE = "polite"
    AUTHORITATIVE = "authoritative"
    WITTY = "witty"
    INSPIRATIONAL = "inspirational"
    CASUAL = "casual"
    URGENT = "urgent"


class Provenance(StrEnum):
    CACHE = "cache"
    API = "api"
    TEMPLATE = "template"


class RouteCategory(StrEnum):
    GENERATE = "generate"
    PROJECT_MUTATION = "project_mutation"
    OUTPUT_UPDATE = "output_update"
    TRANSCRIBE = "transcribe"
    DOCUMENT_PARSE = "document_parse"
    CONTENT_PACK = "content_pack"


class LLMProvider(StrEnum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"
