import pytest

from repurposer.exceptions import (
    ConfigError,
    LLMProviderError,
    NotFoundError,
    PlanRequiredError,
    QuotaExceededError,
    RateLimitedError,
    RepurposerError,
    RequestValidationError,
    StorageError,
    TranscriptionError,
)
from repurposer.types import Plan, Platform, PostTone, Provenance, RouteCategory


@pytest.mark.unit
class TestEnums:
    def test_platform_values(self) -> None:
        assert [p.value for p in Platform] == [
            "linkedin",
            "twitter",
            "email",
            "instagram",
            "facebook",
            "tiktok",
            "youtube",
        ]

    def test_plan_values(self) -> None:
        assert {p.value for p in Plan} == {"trial", "free", "pro", "max", "enterprise"}

    def test_tone_and_provenance(self) -> None:
        assert PostTone("neutral") is PostTone.NEUTRAL
        assert len(PostTone) == 10
        assert [p.value for p in Provenance] == ["cache", "api", "template"]

    def test_route_categories(self) -> None:
        assert RouteCategory.GENERATE.value == "generate"
        assert RouteCategory.TRANSCRIBE.value == "transcribe"


@pytest.mark.unit
class TestExceptions:
    @pytest.mark.parametrize(
        ("exc_type", "status", "code"),
        [
            (NotFoundError, 404, "NOT_FOUND"),
            (PlanRequiredError, 403, "PLAN_REQUIRED"),
            (QuotaExceededError, 403, "QUOTA_EXCEEDED"),
            (RequestValidationError, 400, "VALIDATION_ERROR"),
            (LLMProviderError, 502, "LLM_PROVIDER_ERROR"),
            (TranscriptionError, 502, "TRANSCRIPTION_FAILED"),
            (StorageError, 500, "INTERNAL_ERROR"),
            (ConfigError, 500, "INTERNAL_ERROR"),
        ],
    )
    def test_status_and_code(self, exc_type: type[RepurposerError], status: int, code: str) -> None:
        err = exc_type("boom")
        assert isinstance(err, RepurposerError)
        assert err.status_code == status
        assert err.code == code
        assert str(err) == "boom"

    def test_code_override_and_details(self) -> None:
        err = QuotaExceededError("too long", code="CONTENT_LIMIT_EXCEEDED", details={"limit": 5})
        assert err.code == "CONTENT_LIMIT_EXCEEDED"
        assert err.details == {"limit": 5}
        assert QuotaExceededError.code == "QUOTA_EXCEEDED"

    def test_rate_limited_carries_retry_after(self) -> None:
        err = RateLimitedError("slow down", retry_after_seconds=12)
        assert err.retry_after_seconds == 12
        assert err.status_code == 429
