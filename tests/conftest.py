"""Shared test fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

import repurposer.models.database  # noqa: F401
from repurposer.config.settings import Settings
from repurposer.exceptions import LLMProviderError
from repurposer.llm.provider import CompletionOptions, LLMProviderBase, LLMResponse
from repurposer.llm.transcription import Transcriber, Transcript
from repurposer.web import dependencies
from repurposer.web.app import create_app

if TYPE_CHECKING:
    from repurposer.web.dependencies import AppState


class FakeProvider(LLMProviderBase):
    """Records calls and answers from a script.

    ``fail_when`` is a predicate over the user prompt; matching calls raise.
    """

    name = "fake"

    def __init__(self, content: str = "Generated post #one #two #three", fail_when=None) -> None:
        self.content = content
        self.fail_when = fail_when
        self.calls: list[tuple[str, str, CompletionOptions]] = []

    async def complete(
        self, system_prompt: str, user_prompt: str, options: CompletionOptions
    ) -> LLMResponse:
        self.calls.append((system_prompt, user_prompt, options))
        if self.fail_when is not None and self.fail_when(user_prompt, options):
            raise LLMProviderError("provider down")
        return LLMResponse(content=self.content, model=options.model, tokens_used=12)


class FakeTranscriber(Transcriber):
    def __init__(self, text: str = "hello from audio", duration_seconds: float = 120.0) -> None:
        self.text = text
        self.duration_seconds = duration_seconds
        self.calls: list[str] = []

    async def transcribe(self, filename: str, data: bytes) -> Transcript:
        self.calls.append(filename)
        return Transcript(text=self.text, duration_seconds=self.duration_seconds, language="en")


@pytest.fixture()
async def async_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture()
def app_state(fake_provider: FakeProvider, fake_transcriber: FakeTranscriber):
    """In-memory repositories and services wired to fake collaborators."""
    state = dependencies.build_state(
        Settings(
            use_database=False,
            auth_mode="single",
            openai_api_key="sk-test",
            llm_retry_delay_ms=1,
        ),
        provider=fake_provider,
        transcriber=fake_transcriber,
    )
    dependencies.set_state(state)
    yield state
    dependencies.set_state(None)


@pytest.fixture()
def app(app_state: AppState):
    """Create a fresh app instance for tests."""
    return create_app()


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
