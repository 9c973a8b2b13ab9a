"""Tests for profile_context.py and the lenient answer parsing behind it."""

from scriptstudio.profile_context import (
    NOT_PROVIDED,
    SECTION_LAYOUTS,
    build_profile_chunks,
    build_profile_context,
)
from scriptstudio.schemas import ProfileAnswers

ANSWERS = {
    "whoYouAre": {"bio": "22, Toronto, CS student at Queens", "building": "a study app", "remember": ""},
    "voiceStyle": {"howTalkOnline": "casual, lots of jokes"},
    "proof": {"builtBefore": "", "numbers": "   "},
}


class TestProfileAnswersParse:
    def test_non_dict_input_is_empty(self):
        for raw in (None, "text", 42, ["a"]):
            assert ProfileAnswers.parse(raw).to_json() == {}

    def test_non_string_fields_become_unset(self):
        parsed = ProfileAnswers.parse({"whoYouAre": {"bio": 42, "building": "app"}})
        assert parsed.who_you_are.bio is None
        assert parsed.who_you_are.building == "app"

    def test_non_object_sections_are_dropped(self):
        parsed = ProfileAnswers.parse({"whoYouAre": "nope", "beliefs": {"contrarianTakes": "x"}})
        assert parsed.who_you_are is None
        assert parsed.to_json() == {"beliefs": {"contrarianTakes": "x"}}

    def test_unknown_keys_ignored(self):
        parsed = ProfileAnswers.parse({"somethingElse": {"a": "b"}, "stories": {"extra": "y"}})
        assert parsed.to_json() == {"stories": {}}


class TestBuildProfileContext:
    def test_renders_only_sections_with_content(self):
        context = build_profile_context(ANSWERS)
        assert context.startswith("WHO YOU ARE:\n- Bio: 22, Toronto, CS student at Queens")
        assert "- Building: a study app" in context
        assert f"- Remember for: {NOT_PROVIDED}" in context
        assert "VOICE & COMMUNICATION STYLE:\n- How you communicate: casual, lots of jokes" in context
        # whitespace-only answers don't count
        assert "PROOF" not in context

    def test_sections_follow_layout_order(self):
        context = build_profile_context(ANSWERS)
        assert context.index("WHO YOU ARE:") < context.index("VOICE & COMMUNICATION STYLE:")
        assert "\n\n" in context

    def test_empty_answers(self):
        assert build_profile_context({}) == ""
        assert build_profile_context(None) == ""


class TestBuildProfileChunks:
    def test_one_chunk_per_answered_section(self):
        chunks = build_profile_chunks(ANSWERS)
        assert [c.metadata for c in chunks] == [
            {"section": "whoYouAre", "type": "profile"},
            {"section": "voiceStyle", "type": "profile"},
        ]

    def test_who_you_are_chunk_has_footer(self):
        chunk = build_profile_chunks(ANSWERS)[0]
        assert chunk.content.startswith("WHO YOU ARE - BACKGROUND AND FIELD:\n")
        assert "Bio (age, location, current role/field): 22, Toronto, CS student at Queens" in chunk.content
        assert "\n\nIMPORTANT: Extract the creator's field/industry" in chunk.content

    def test_other_chunks_have_no_footer(self):
        chunk = build_profile_chunks(ANSWERS)[1]
        assert chunk.content == (
            "VOICE AND COMMUNICATION STYLE:\n"
            "How you communicate: casual, lots of jokes\n"
            f"Similar voices you relate to: {NOT_PROVIDED}\n"
            f"What you dislike in content: {NOT_PROVIDED}\n"
            f"Speaking perspective: {NOT_PROVIDED}"
        )

    def test_every_section_key_renders(self):
        answers = {layout.key: {layout.fields[0][0]: "x"} for layout in SECTION_LAYOUTS}
        chunks = build_profile_chunks(answers)
        assert len(chunks) == len(SECTION_LAYOUTS) == 10
