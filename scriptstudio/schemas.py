"""Request/response models and the onboarding answer records.

JSON on the wire is camelCase (the frontend's convention); Python attributes
are snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Onboarding answers ---
class AnswerSection(CamelModel):
    """One onboarding section. Anything that isn't a string counts as unset."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _strings_only(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    def has_content(self) -> bool:
        return any(value and value.strip() for value in self.model_dump().values())


class WhoYouAre(AnswerSection):
    bio: Optional[str] = None
    building: Optional[str] = None
    remember: Optional[str] = None


class WhyProduct(AnswerSection):
    when_started_caring: Optional[str] = None
    experiences: Optional[str] = None
    exact_moment: Optional[str] = None
    relationship_evolution: Optional[str] = None


class Proof(AnswerSection):
    built_before: Optional[str] = None
    numbers: Optional[str] = None
    wins: Optional[str] = None
    losses: Optional[str] = None


class TargetAudience(AnswerSection):
    talking_to: Optional[str] = None
    struggling_with: Optional[str] = None
    secretly_want: Optional[str] = None
    want_them_to_do: Optional[str] = None


class VoiceStyle(AnswerSection):
    how_talk_online: Optional[str] = None
    adjacent_creators: Optional[str] = None
    hate_in_content: Optional[str] = None
    speaking_as: Optional[str] = None


class Beliefs(AnswerSection):
    social_media: Optional[str] = None
    building_products: Optional[str] = None
    work_learning: Optional[str] = None
    contrarian_takes: Optional[str] = None


class Stories(AnswerSection):
    moment_proves_care: Optional[str] = None
    helped_someone: Optional[str] = None
    failed_and_changed: Optional[str] = None
    deep_in_culture: Optional[str] = None


class ProductSpecifics(AnswerSection):
    what_does_it_do: Optional[str] = None
    stage: Optional[str] = None
    one_action: Optional[str] = None
    non_negotiable_phrases: Optional[str] = None


class Preferences(AnswerSection):
    never_fake: Optional[str] = None
    avoid_entirely: Optional[str] = None
    okay_with_flexing: Optional[str] = None
    never_use: Optional[str] = None


class ContentPatterns(AnswerSection):
    hook_formulas: Optional[str] = None
    storytelling_patterns: Optional[str] = None
    recurring_series: Optional[str] = None


class ProfileAnswers(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    who_you_are: Optional[WhoYouAre] = None
    why_product: Optional[WhyProduct] = None
    proof: Optional[Proof] = None
    target_audience: Optional[TargetAudience] = None
    voice_style: Optional[VoiceStyle] = None
    beliefs: Optional[Beliefs] = None
    stories: Optional[Stories] = None
    product_specifics: Optional[ProductSpecifics] = None
    preferences: Optional[Preferences] = None
    content_patterns: Optional[ContentPatterns] = None

    @field_validator("*", mode="before")
    @classmethod
    def _objects_only(cls, value: Any) -> Any:
        if isinstance(value, (dict, AnswerSection)):
            return value
        return None

    @classmethod
    def parse(cls, raw: Any) -> "ProfileAnswers":
        """Lenient parse: malformed input degrades to empty sections, never raises."""
        if isinstance(raw, ProfileAnswers):
            return raw
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate(raw)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Video scripts ---
def _clean_name(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("Script name cannot be empty")
    return value.strip()


class VideoScriptOut(CamelModel):
    id: str
    name: str
    script: Optional[str] = None
    repurposed_script: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: datetime


class VideoScriptCreate(CamelModel):
    name: str
    script: Optional[str] = None

    @field_validator("name", mode="after")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        return _clean_name(value)


class VideoScriptUpdate(CamelModel):
    name: Optional[str] = None
    script: Optional[str] = None
    repurposed_script: Optional[str] = None

    @field_validator("name", mode="after")
    @classmethod
    def _name_not_blank(cls, value: Optional[str]) -> str:
        return _clean_name(value)


class PromptRequest(CamelModel):
    script_id: str = Field(min_length=1)
    selected_text: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    is_repurposed: bool = False


class PromptResponse(CamelModel):
    updated_text: str


# --- Backboard profile ---
class ProfileSaveRequest(CamelModel):
    answers: dict[str, Any]


class BackboardProfileOut(CamelModel):
    id: str
    user_id: str
    answers: dict[str, Any]
    assistant_id: Optional[str] = None
    memory_ids: Optional[list[str]] = None
    created_at: datetime
    updated_at: datetime


class ProfileEnvelope(CamelModel):
    profile: Optional[BackboardProfileOut] = None


# --- Chatbot ---
class ChatInitRequest(CamelModel):
    script_id: str = Field(min_length=1)
    script_content: str = Field(min_length=1)


class ChatInitResponse(CamelModel):
    thread_id: str
    assistant_id: str


class ChatMessageRequest(CamelModel):
    thread_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
    script_content: str = Field(min_length=1)


class ChatMessageResponse(CamelModel):
    response: str
    suggested_changes: Optional[str] = None
