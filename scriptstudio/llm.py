"""Text-generation backends (chat completion).

Every backend takes role-tagged messages (``{"role": ..., "content": ...}``)
and returns the generated text.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from openai import AsyncOpenAI

from scriptstudio.config import Settings
from scriptstudio.utils import create_gemini_model

logger = logging.getLogger(__name__)

Message = dict[str, str]


class GenerationError(Exception):
    """A text-generation backend failed or returned nothing usable."""


class TextGenerator(Protocol):
    async def generate(self, messages: list[Message], temperature: float = 0.3, max_tokens: int = 2000) -> str:
        ...


class OpenAIChatGenerator:
    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client: Optional[AsyncOpenAI] = None):
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def generate(self, messages: list[Message], temperature: float = 0.3, max_tokens: int = 2000) -> str:
        logger.info("Calling OpenAI: model=%s messages=%d", self.model, len(messages))
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise GenerationError(f"OpenAI chat completion failed: {e}") from e
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


class GeminiGenerator:
    """Gemini backend. System messages become the model's system instruction."""

    def __init__(self, api_key: str, model_name: str = "gemini-1.5-flash-latest"):
        self.api_key = api_key
        self.model_name = model_name

    async def generate(self, messages: list[Message], temperature: float = 0.3, max_tokens: int = 2000) -> str:
        system = "\n\n".join(m["content"] for m in messages if m.get("role") == "system") or None
        contents = [
            {"role": "model" if m.get("role") == "assistant" else "user", "parts": [m["content"]]}
            for m in messages
            if m.get("role") != "system"
        ]
        model = create_gemini_model(
            self.api_key,
            model_name=self.model_name,
            temperature=temperature,
            system_instruction=system,
        )
        logger.info("Calling Gemini: model=%s messages=%d", self.model_name, len(contents))
        try:
            response = await model.generate_content_async(
                contents,
                generation_config={"temperature": temperature, "max_output_tokens": max_tokens},
            )
            return (response.text or "").strip()
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e


def build_text_generator(settings: Settings) -> Optional[TextGenerator]:
    provider = settings.resolved_llm_provider()
    if provider == "openai":
        return OpenAIChatGenerator(settings.openai_api_key, model=settings.openai_chat_model)
    if provider == "gemini":
        return GeminiGenerator(settings.google_api_key, model_name=settings.gemini_model)
    return None
