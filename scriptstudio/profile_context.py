"""Render onboarding answers as prose.

Two renderings share one layout table:

* ``build_profile_context``: a single labeled block per section, embedded
  directly in repurposing prompts.
* ``build_profile_chunks``: one memory record per section, indexed into the
  backboard.io assistant so RAG can retrieve it.

A section is rendered only when at least one of its fields has content.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from scriptstudio.schemas import AnswerSection, ProfileAnswers

NOT_PROVIDED = "Not provided"


@dataclass(frozen=True)
class SectionLayout:
    key: str  # camelCase key used in stored answers and memory metadata
    attr: str
    context_title: str
    memory_title: str
    # (field attribute, context label, memory label)
    fields: tuple[tuple[str, str, str], ...]
    memory_footer: str = ""


@dataclass
class ProfileChunk:
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


SECTION_LAYOUTS: tuple[SectionLayout, ...] = (
    SectionLayout(
        key="whoYouAre",
        attr="who_you_are",
        context_title="WHO YOU ARE",
        memory_title="WHO YOU ARE - BACKGROUND AND FIELD",
        fields=(
            ("bio", "Bio", "Bio (age, location, current role/field)"),
            ("building", "Building", "What you're building/working on"),
            ("remember", "Remember for", "What you want to be remembered for"),
        ),
        memory_footer=(
            "IMPORTANT: Extract the creator's field/industry, university/education, and career "
            "path from the bio above. Use this information to replace any generic field "
            "references in scripts."
        ),
    ),
    SectionLayout(
        key="whyProduct",
        attr="why_product",
        context_title="YOUR JOURNEY & MOTIVATION",
        memory_title="YOUR JOURNEY AND MOTIVATION",
        fields=(
            ("when_started_caring", "Started caring", "When you started caring"),
            ("experiences", "Experiences", "Experiences that shaped you"),
            ("exact_moment", "Exact moment", "The moment that pushed you"),
            ("relationship_evolution", "Relationship evolution", "How your relationship evolved"),
        ),
    ),
    SectionLayout(
        key="proof",
        attr="proof",
        context_title="PROOF & CREDIBILITY",
        memory_title="PROOF AND CREDIBILITY",
        fields=(
            ("built_before", "Built before", "What you've built before"),
            ("numbers", "Numbers", "Numbers and metrics"),
            ("wins", "Wins", "Notable wins"),
            ("losses", "Losses", "Setbacks and learnings"),
        ),
    ),
    SectionLayout(
        key="targetAudience",
        attr="target_audience",
        context_title="YOUR AUDIENCE",
        memory_title="YOUR AUDIENCE",
        fields=(
            ("talking_to", "Talking to", "Who you're talking to"),
            ("struggling_with", "Struggling with", "What they're struggling with"),
            ("secretly_want", "Secretly want", "What they secretly want"),
            ("want_them_to_do", "Want them to do", "What you want them to do"),
        ),
    ),
    SectionLayout(
        key="voiceStyle",
        attr="voice_style",
        context_title="VOICE & COMMUNICATION STYLE",
        memory_title="VOICE AND COMMUNICATION STYLE",
        fields=(
            ("how_talk_online", "How you communicate", "How you communicate"),
            ("adjacent_creators", "Similar voices", "Similar voices you relate to"),
            ("hate_in_content", "Dislikes", "What you dislike in content"),
            ("speaking_as", "Speaking as", "Speaking perspective"),
        ),
    ),
    SectionLayout(
        key="beliefs",
        attr="beliefs",
        context_title="BELIEFS & PRINCIPLES",
        memory_title="BELIEFS AND PRINCIPLES",
        fields=(
            ("social_media", "Your field/industry", "Beliefs about your field"),
            ("building_products", "Building/creating", "Beliefs about building"),
            ("work_learning", "Work/learning/life", "Beliefs about work and learning"),
            ("contrarian_takes", "Contrarian takes", "Contrarian takes"),
        ),
    ),
    SectionLayout(
        key="stories",
        attr="stories",
        context_title="STORIES & MOMENTS",
        memory_title="STORIES AND MOMENTS",
        fields=(
            ("moment_proves_care", "Moment proves care", "Moment that proves you care"),
            ("helped_someone", "Helped someone", "Time you helped someone"),
            ("failed_and_changed", "Failed and changed", "Time you failed and learned"),
            ("deep_in_culture", "Deep in culture", "Moment showing deep understanding"),
        ),
    ),
    SectionLayout(
        key="productSpecifics",
        attr="product_specifics",
        context_title="PROJECT SPECIFICS",
        memory_title="PROJECT SPECIFICS",
        fields=(
            ("what_does_it_do", "What it does", "What it does"),
            ("stage", "Stage", "Current stage"),
            ("one_action", "One action", "Primary call to action"),
            ("non_negotiable_phrases", "Non-negotiable phrases", "Non-negotiable phrases"),
        ),
    ),
    SectionLayout(
        key="preferences",
        attr="preferences",
        context_title="PREFERENCES & BOUNDARIES",
        memory_title="PREFERENCES AND BOUNDARIES",
        fields=(
            ("never_fake", "Never fake", "Topics you never fake"),
            ("avoid_entirely", "Avoid entirely", "Topics you avoid"),
            ("okay_with_flexing", "Okay with sharing achievements", "Attitude toward achievements"),
            ("never_use", "Never use", "Words/phrases to never use"),
        ),
    ),
    SectionLayout(
        key="contentPatterns",
        attr="content_patterns",
        context_title="COMMUNICATION PATTERNS",
        memory_title="COMMUNICATION PATTERNS",
        fields=(
            ("hook_formulas", "Hook patterns", "Hook formulas you like"),
            ("storytelling_patterns", "Storytelling patterns", "Storytelling patterns"),
            ("recurring_series", "Recurring themes", "Recurring series ideas"),
        ),
    ),
)


def _value(section: AnswerSection, attr: str) -> str:
    value = getattr(section, attr, None)
    if isinstance(value, str) and value.strip():
        return value
    return NOT_PROVIDED


def _present(answers: ProfileAnswers, layout: SectionLayout) -> Optional[AnswerSection]:
    section = getattr(answers, layout.attr, None)
    if section is None or not section.has_content():
        return None
    return section


def render_context_section(answers: ProfileAnswers, layout: SectionLayout) -> Optional[str]:
    section = _present(answers, layout)
    if section is None:
        return None
    lines = [f"{layout.context_title}:"]
    lines.extend(f"- {label}: {_value(section, attr)}" for attr, label, _ in layout.fields)
    return "\n".join(lines)


def render_memory_section(answers: ProfileAnswers, layout: SectionLayout) -> Optional[ProfileChunk]:
    section = _present(answers, layout)
    if section is None:
        return None
    lines = [f"{layout.memory_title}:"]
    lines.extend(f"{label}: {_value(section, attr)}" for attr, _, label in layout.fields)
    content = "\n".join(lines)
    if layout.memory_footer:
        content = f"{content}\n\n{layout.memory_footer}"
    return ProfileChunk(content=content, metadata={"section": layout.key, "type": "profile"})


def build_profile_context(answers: Any) -> str:
    """Render every answered section as one prose block for an LLM prompt."""
    parsed = ProfileAnswers.parse(answers)
    blocks = [render_context_section(parsed, layout) for layout in SECTION_LAYOUTS]
    return "\n\n".join(block for block in blocks if block)


def build_profile_chunks(answers: Any) -> list[ProfileChunk]:
    """Render every answered section as a separate memory record."""
    parsed = ProfileAnswers.parse(answers)
    chunks = [render_memory_section(parsed, layout) for layout in SECTION_LAYOUTS]
    return [chunk for chunk in chunks if chunk]
