# utils.py - Prompts and Utilities for Script Transcription and Repurposing
import logging

import google.generativeai as genai

logger = logging.getLogger(__name__)

# --- PROMPTS ---
VERBATIM_TRANSCRIPTION_PROMPT = """
You are an expert transcriber for short-form video creators.

Transcribe the provided audio accurately and return it as a video script.

**INSTRUCTIONS:**

1. **Transcribe Accurately:**
• Transcribe exactly what is spoken, in the language it is spoken
• Include proper punctuation
• Note any unclear audio with [unclear] tags

2. **Format as Script Segments:**
• Break the transcript into short segments of one or two sentences
• Start each segment with the time it begins, as [MM:SS]
• Separate segments with a blank line

**EXAMPLE:**

[00:00] I don't know who needs to hear this, but college is not real life.

[00:04] Here's what nobody tells you about your first internship.

CRITICAL: Return ONLY the transcript segments. Do not add headings, notes or commentary.
"""

REPURPOSE_SYSTEM_PROMPT = (
    "You are a precise content repurposing specialist. You make minimal, surgical changes "
    "to adapt content to a creator's voice while preserving the original meaning and structure."
)


def get_batch_repurpose_prompt(profile_context, batch_text):
    """
    Returns the numbered-segment repurposing prompt for one batch.

    Args:
        profile_context (str): Rendered creator profile
        batch_text (str): Segments as numbered lines, e.g. "1. [00:05] Hello there"

    Returns:
        str: The user prompt
    """
    return f"""You are a content repurposing expert. Repurpose ONLY the following segments from a video transcript to match the creator's voice and style. Make MINIMAL changes - only adapt what's necessary (tone, word choice, examples) while preserving the core message and structure.

CREATOR PROFILE:
{profile_context}

ORIGINAL SEGMENTS:
{batch_text}

CRITICAL INSTRUCTIONS:
1. Repurpose each segment INDIVIDUALLY with MINIMAL changes
2. Keep the EXACT same meaning and core message
3. Only change: word choice, tone, examples, or phrasing to match their voice
4. Preserve ALL timestamps exactly as shown [MM:SS]
5. Keep the same structure and flow
6. If a segment doesn't need changes, return it as-is
7. Respect their red lines (words/phrases to avoid)
8. Return ONLY the repurposed segments in the same numbered format

Return the repurposed segments in this exact format:
1. [timestamp if present] repurposed text
2. [timestamp if present] repurposed text
..."""


def get_rag_line_prompt(script_line):
    """Returns the single-line repurposing prompt used with backboard.io memory retrieval."""
    return f"""Repurpose this line to match the creator's actual background and field. Make MINIMAL changes - keep the same length, tone, style, and structure. Only replace generic references with the creator's specific details.

ORIGINAL LINE:
{script_line}

CRITICAL RULES - PRESERVE STYLE AND LENGTH:
1. Keep the EXACT same length - don't add extra words or details
2. Keep the EXACT same tone and style - match the original's energy and pacing
3. Keep the EXACT same structure - don't rearrange or add clauses
4. Only replace generic references with creator's specific details
5. Preserve timestamps if present [MM:SS] exactly as shown

WHAT TO REPLACE (only if present):
- Industry/field references (e.g., "investment banking", "consulting") -> Creator's actual field
- University names -> Creator's actual university
- Majors/degrees -> Creator's actual major/background
- Job titles/career paths -> Creator's actual career path

WHAT NOT TO DO:
- DO NOT add extra details, examples, or explanations
- DO NOT change the tone (formal/informal, energetic/calm, etc.)
- DO NOT make the line longer
- DO NOT change the sentence structure

EXAMPLES:
Original: "I'm a finance student at McGill"
Repurposed (if creator is CS at Queens): "I'm a computer science student at Queens University"

Original: "I don't know who needs to hear this, but college is not real life."
Repurposed: "I don't know who needs to hear this, but college is not real life."

CRITICAL OUTPUT FORMAT:
- Return ONLY the repurposed line text
- If timestamp is present in original, include it: [MM:SS] repurposed text
- Do NOT add extra words or details"""


def get_selection_edit_prompt(selected_text, user_prompt):
    return f"""The user has selected this text from their script:
"{selected_text}"

User's request: {user_prompt}

Please modify the selected text according to the user's request. Use the creator's profile information (retrieved via RAG) to ensure the modification matches their voice and style. Return ONLY the modified text, nothing else."""


def get_scriptbot_prompt(script_content, user_message):
    """
    Returns the ScriptBot chat prompt with the current script embedded.

    Suggested edits are requested inside a fenced code block so they can be
    split from the conversational part of the reply.
    """
    return f"""You are ScriptBot, a friendly and helpful video script editing assistant.

Your role:
- Help users improve their video scripts
- Be conversational and encouraging
- Provide specific, actionable suggestions
- When suggesting changes, always explain WHY
- Ask follow-up questions to understand their goals

Current script the user is editing:
{script_content}

Guidelines:
- Keep responses concise (2-3 sentences max for regular responses)
- When editing, show the EXACT new text in a code block format
- Always ask if they want to apply changes
- Focus on making scripts more engaging, clear, and effective

When suggesting changes, format them like this:
```
[Your suggested script changes here]
```

Remember: The user is working on a video script, so consider pacing, engagement, hooks, and clarity.

User's request: {user_message}

Please help them edit their script. If they're asking for specific changes, provide the edited version in a code block."""


# --- UTILITY FUNCTIONS ---
def create_gemini_model(api_key, model_name="gemini-1.5-flash-latest", temperature=0.3, system_instruction=None):
    """
    Create and configure a Gemini model instance.

    Args:
        api_key (str): Google API key
        model_name (str): Gemini model name
        temperature (float): Generation temperature (default: 0.3)
        system_instruction (str | None): Optional system prompt

    Returns:
        GenerativeModel: Configured Gemini model
    """
    genai.configure(api_key=api_key)  # type: ignore
    generation_config = {"temperature": temperature}
    return genai.GenerativeModel(  # type: ignore
        model_name=model_name,
        generation_config=generation_config,  # type: ignore
        system_instruction=system_instruction,
    )


def cleanup_uploaded_files(uploaded_files_list):
    """
    Clean up uploaded files from Gemini API.

    Args:
        uploaded_files_list (list): List of uploaded file objects
    """
    for uploaded_file in uploaded_files_list:
        try:
            genai.delete_file(uploaded_file.name)  # type: ignore
        except Exception as e:
            logger.warning("Could not delete file %s: %s", uploaded_file.name, e)
