"""Speech-to-text adapters.

Both adapters read a media file from disk and return script text in the
``[MM:SS] text`` segment form when the service provides timing, or
sentence-broken text otherwise.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

import google.generativeai as genai
from openai import AsyncOpenAI

from scriptstudio.config import Settings
from scriptstudio.segments import break_sentences, format_transcription, parse_segments
from scriptstudio.utils import VERBATIM_TRANSCRIPTION_PROMPT, cleanup_uploaded_files, create_gemini_model

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """The speech-to-text service failed."""


class Transcriber(Protocol):
    async def transcribe(self, path: Path, mime_type: str) -> str:
        ...


class OpenAITranscriber:
    def __init__(self, api_key: str, model: str = "whisper-1", client: Optional[AsyncOpenAI] = None):
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def transcribe(self, path: Path, mime_type: str) -> str:
        logger.info("Transcribing %s (%s) with %s", path.name, mime_type, self.model)
        try:
            with open(path, "rb") as media:
                response = await self._client.audio.transcriptions.create(
                    file=(path.name, media, mime_type),
                    model=self.model,
                    response_format="verbose_json",
                    timestamp_granularities=["segment"],
                )
        except Exception as e:
            raise TranscriptionError(f"OpenAI transcription failed: {e}") from e
        return format_transcription(response)


class GeminiTranscriber:
    def __init__(self, api_key: str, model_name: str = "gemini-1.5-flash-latest"):
        self.api_key = api_key
        self.model_name = model_name

    async def transcribe(self, path: Path, mime_type: str) -> str:
        model = create_gemini_model(self.api_key, model_name=self.model_name, temperature=0.0)
        loop = asyncio.get_running_loop()
        uploaded_files_list = []
        try:
            uploaded_file = await loop.run_in_executor(
                None, lambda: genai.upload_file(str(path), mime_type=mime_type)
            )
            uploaded_files_list.append(uploaded_file)
            logger.info("Uploaded %s to Gemini as %s", path.name, uploaded_file.name)

            response = await model.generate_content_async([VERBATIM_TRANSCRIPTION_PROMPT, uploaded_file])
            text = (response.text or "").strip()
        except Exception as e:
            raise TranscriptionError(f"Gemini transcription failed: {e}") from e
        finally:
            await loop.run_in_executor(None, cleanup_uploaded_files, uploaded_files_list)

        return normalize_flat_transcript(text)


def normalize_flat_transcript(text: str) -> str:
    """Keep model output that already has timestamp markers; otherwise break it by sentence."""
    segments = parse_segments(text)
    if segments and any(segment.timestamp for segment in segments):
        return text
    return break_sentences(text)


def build_transcriber(settings: Settings) -> Optional[Transcriber]:
    provider = settings.resolved_llm_provider()
    if provider == "openai":
        return OpenAITranscriber(settings.openai_api_key, model=settings.openai_transcription_model)
    if provider == "gemini":
        return GeminiTranscriber(settings.google_api_key, model_name=settings.gemini_model)
    return None
