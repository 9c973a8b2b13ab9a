# scriptstudio/config.py

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BACKBOARD_URL = "https://app.backboard.io/api"


def _optional(key: str) -> Optional[str]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_chat_model: str = "gpt-4o-mini"
    openai_transcription_model: str = "whisper-1"
    google_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash-latest"
    llm_provider: Optional[str] = None
    backboard_api_key: Optional[str] = None
    backboard_api_url: str = DEFAULT_BACKBOARD_URL
    backboard_llm_provider: str = "openai"
    backboard_model_name: str = "gpt-4o"
    better_auth_secret: Optional[str] = None
    frontend_url: str = "*"
    temp_dir: Path = Path("temp_media")
    port: int = 8000

    @property
    def backboard_configured(self) -> bool:
        return self.backboard_api_key is not None

    def resolved_llm_provider(self) -> Optional[str]:
        """Pick the text-generation/transcription provider.

        An explicit LLM_PROVIDER wins. Otherwise OpenAI is preferred when its key
        is present, then Gemini. Returns None when neither is configured.
        """
        if self.llm_provider:
            provider = self.llm_provider.lower()
            if provider == "openai" and self.openai_api_key:
                return "openai"
            if provider == "gemini" and self.google_api_key:
                return "gemini"
            return None
        if self.openai_api_key:
            return "openai"
        if self.google_api_key:
            return "gemini"
        return None


def load_settings() -> Settings:
    return Settings(
        database_url=_optional("DATABASE_URL"),
        openai_api_key=_optional("OPENAI_API_KEY"),
        openai_chat_model=os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini"),
        openai_transcription_model=os.getenv("OPENAI_TRANSCRIPTION_MODEL", "whisper-1"),
        google_api_key=_optional("GOOGLE_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest"),
        llm_provider=_optional("LLM_PROVIDER"),
        backboard_api_key=_optional("BACKBOARD_API_KEY"),
        backboard_api_url=os.getenv("BACKBOARD_API_URL", DEFAULT_BACKBOARD_URL),
        backboard_llm_provider=os.getenv("BACKBOARD_LLM_PROVIDER", "openai"),
        backboard_model_name=os.getenv("BACKBOARD_MODEL_NAME", "gpt-4o"),
        better_auth_secret=_optional("BETTER_AUTH_SECRET"),
        frontend_url=os.getenv("FRONTEND_URL", "*"),
        temp_dir=Path(os.getenv("TEMP_DIR", "temp_media")),
        port=int(os.getenv("PORT", 8000)),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
