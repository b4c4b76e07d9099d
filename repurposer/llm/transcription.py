"""Audio transcription providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from openai import AsyncOpenAI
from pydantic import BaseModel

from repurposer.exceptions import TranscriptionError


class Transcript(BaseModel):
    text: str
    duration_seconds: float
    language: str | None = None

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / 60


class Transcriber(ABC):
    """Abstract base for speech-to-text providers."""

    @abstractmethod
    async def transcribe(self, filename: str, data: bytes) -> Transcript:
        """Transcribe an audio file. Raises TranscriptionError on failure."""


class OpenAIWhisperTranscriber(Transcriber):
    """OpenAI Whisper transcription via the audio API."""

    def __init__(self, api_key: str, model: str = "whisper-1") -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model

    async def transcribe(self, filename: str, data: bytes) -> Transcript:
        try:
            result = await self._client.audio.transcriptions.create(
                model=self._model,
                file=(filename, data),
                response_format="verbose_json",
            )
        except Exception as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e

        text = (result.text or "").strip()
        if not text:
            raise TranscriptionError("Transcription returned no text")
        return Transcript(
            text=text,
            duration_seconds=float(getattr(result, "duration", 0.0) or 0.0),
            language=getattr(result, "language", None),
        )
