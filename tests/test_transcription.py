"""Tests for transcription.py, llm.py and the provider selection in config.py."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import make_openai_response
from scriptstudio.config import Settings
from scriptstudio.llm import GeminiGenerator, GenerationError, OpenAIChatGenerator, build_text_generator
from scriptstudio.transcription import (
    GeminiTranscriber,
    OpenAITranscriber,
    TranscriptionError,
    build_transcriber,
    normalize_flat_transcript,
)


def _openai_client():
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# OpenAITranscriber
# ---------------------------------------------------------------------------

class TestOpenAITranscriber:
    @pytest.mark.asyncio
    async def test_segments_become_timestamped_blocks(self, tmp_path):
        media = tmp_path / "clip.mp3"
        media.write_bytes(b"fake audio")
        client = _openai_client()
        client.audio.transcriptions.create.return_value = SimpleNamespace(
            text="Hello there. Thanks for watching.",
            segments=[
                SimpleNamespace(start=5.0, end=8.0, text=" Hello there."),
                SimpleNamespace(start=12.3, end=14.0, text=" Thanks for watching."),
            ],
        )

        text = await OpenAITranscriber("key", client=client).transcribe(media, "audio/mpeg")

        assert text == "[00:05] Hello there.\n\n[00:12] Thanks for watching."
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["response_format"] == "verbose_json"
        assert kwargs["file"][0] == "clip.mp3"
        assert kwargs["file"][2] == "audio/mpeg"

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_transcription_error(self, tmp_path):
        media = tmp_path / "clip.mp3"
        media.write_bytes(b"fake audio")
        client = _openai_client()
        client.audio.transcriptions.create.side_effect = RuntimeError("413 file too large")

        with pytest.raises(TranscriptionError, match="413"):
            await OpenAITranscriber("key", client=client).transcribe(media, "audio/mpeg")


class TestGeminiTranscriber:
    @pytest.mark.asyncio
    async def test_uploads_generates_and_cleans_up(self, tmp_path):
        media = tmp_path / "clip.ogg"
        media.write_bytes(b"fake audio")
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=SimpleNamespace(text="One. Two."))
        uploaded = SimpleNamespace(name="files/abc")

        with patch("scriptstudio.transcription.create_gemini_model", return_value=model), \
                patch("scriptstudio.transcription.genai.upload_file", return_value=uploaded) as upload, \
                patch("scriptstudio.transcription.cleanup_uploaded_files") as cleanup:
            text = await GeminiTranscriber("key").transcribe(media, "audio/ogg")

        assert text == "One.\n\nTwo."
        upload.assert_called_once_with(str(media), mime_type="audio/ogg")
        cleanup.assert_called_once_with([uploaded])

    @pytest.mark.asyncio
    async def test_failure_still_cleans_up(self, tmp_path):
        media = tmp_path / "clip.ogg"
        media.write_bytes(b"fake audio")
        model = MagicMock()
        model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota"))
        uploaded = SimpleNamespace(name="files/abc")

        with patch("scriptstudio.transcription.create_gemini_model", return_value=model), \
                patch("scriptstudio.transcription.genai.upload_file", return_value=uploaded), \
                patch("scriptstudio.transcription.cleanup_uploaded_files") as cleanup:
            with pytest.raises(TranscriptionError):
                await GeminiTranscriber("key").transcribe(media, "audio/ogg")

        cleanup.assert_called_once_with([uploaded])


def test_normalize_flat_transcript():
    timestamped = "[00:00] Hi. There.\n\n[00:03] Bye."
    assert normalize_flat_transcript(timestamped) == timestamped
    assert normalize_flat_transcript("Hi. There.") == "Hi.\n\nThere."


# ---------------------------------------------------------------------------
# Text generators
# ---------------------------------------------------------------------------

class TestOpenAIChatGenerator:
    @pytest.mark.asyncio
    async def test_returns_stripped_content(self):
        client = _openai_client()
        client.chat.completions.create.return_value = make_openai_response("  rewritten \n")
        generator = OpenAIChatGenerator("key", model="gpt-4o-mini", client=client)

        text = await generator.generate([{"role": "user", "content": "hi"}], temperature=0.3, max_tokens=2000)

        assert text == "rewritten"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 2000

    @pytest.mark.asyncio
    async def test_error_wrapped(self):
        client = _openai_client()
        client.chat.completions.create.side_effect = RuntimeError("boom")
        with pytest.raises(GenerationError):
            await OpenAIChatGenerator("key", client=client).generate([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_gemini_generator_maps_roles():
    model = MagicMock()
    model.generate_content_async = AsyncMock(return_value=SimpleNamespace(text=" ok "))
    messages = [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
    ]

    with patch("scriptstudio.llm.create_gemini_model", return_value=model) as create:
        assert await GeminiGenerator("key").generate(messages, max_tokens=100) == "ok"

    assert create.call_args.kwargs["system_instruction"] == "be brief"
    contents = model.generate_content_async.call_args.args[0]
    assert [c["role"] for c in contents] == ["user", "model"]
    config = model.generate_content_async.call_args.kwargs["generation_config"]
    assert config["max_output_tokens"] == 100


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------

class TestProviderSelection:
    def test_openai_preferred(self):
        settings = Settings(openai_api_key="o", google_api_key="g")
        assert settings.resolved_llm_provider() == "openai"
        assert isinstance(build_text_generator(settings), OpenAIChatGenerator)
        assert isinstance(build_transcriber(settings), OpenAITranscriber)

    def test_explicit_gemini(self):
        settings = Settings(openai_api_key="o", google_api_key="g", llm_provider="Gemini")
        assert isinstance(build_text_generator(settings), GeminiGenerator)
        assert isinstance(build_transcriber(settings), GeminiTranscriber)

    def test_explicit_provider_without_key(self):
        settings = Settings(openai_api_key="o", llm_provider="gemini")
        assert settings.resolved_llm_provider() is None

    def test_nothing_configured(self):
        settings = Settings()
        assert build_text_generator(settings) is None
        assert build_transcriber(settings) is None
