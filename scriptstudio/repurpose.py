"""Repurpose a transcript into the creator's voice, segment by segment.

Two strategies share the ``RepurposeStrategy`` interface:

* ``BatchRepurposer`` sends batches of numbered segments plus the rendered
  profile to a text generator.
* ``RagRepurposer`` sends one segment at a time to the user's backboard.io
  assistant, which retrieves profile memories itself.

Both return exactly one segment per input segment, in order. Any unit that
fails (a batch, a single segment) falls back to the original text. When no RAG
thread can be opened, the batch strategy takes over if one is available.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol

from scriptstudio.backboard_client import BackboardClient, BackboardError
from scriptstudio.llm import TextGenerator
from scriptstudio.profile_context import build_profile_context
from scriptstudio.segments import Segment, format_segments, parse_segments
from scriptstudio.utils import REPURPOSE_SYSTEM_PROMPT, get_batch_repurpose_prompt, get_rag_line_prompt

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
BATCH_TEMPERATURE = 0.3
BATCH_MAX_TOKENS = 2000

_NUMBERED_LINE = re.compile(r"^\d+\.\s*(?:\[(\d+:\d+)\])?\s*(.+)$")
_TIMESTAMPED_LINE = re.compile(r"^\[(\d+:\d+)\]\s*(.+)$", re.DOTALL)
_LINE_BREAKS = re.compile(r"\s*\n\s*")


class RepurposeError(Exception):
    """Repurposing could not start (e.g. no thread could be opened)."""


class RepurposeStrategy(Protocol):
    async def repurpose_segments(self, segments: list[Segment]) -> list[Segment]:
        ...


def one_line(text: str) -> str:
    return _LINE_BREAKS.sub(" ", text.strip())


def number_batch(batch: list[Segment], start: int) -> str:
    # Responses are matched back by line, so every segment must fit on one
    return "\n".join(
        f"{start + offset}. {one_line(segment.render())}" for offset, segment in enumerate(batch)
    )


def parse_batch_response(text: str, batch: list[Segment]) -> list[Segment]:
    """Map numbered response lines back onto ``batch`` by position.

    Lines beyond the batch are ignored and missing lines are padded with the
    originals, so the result always has ``len(batch)`` segments.
    """
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    result: list[Segment] = []
    for original, line in zip(batch, lines):
        numbered = _NUMBERED_LINE.match(line)
        if numbered:
            timestamp, body = numbered.group(1), numbered.group(2).strip()
        else:
            stamped = _TIMESTAMPED_LINE.match(line)
            if stamped:
                timestamp, body = stamped.group(1), stamped.group(2).strip()
            else:
                timestamp, body = None, line
        if not body:
            result.append(original)
            continue
        result.append(Segment(text=body, timestamp=timestamp or original.timestamp))

    result.extend(batch[len(result):])
    return result


def parse_line_reply(reply: str, original: Segment) -> Segment:
    """Reduce a single-line reply to exactly one segment.

    Models sometimes add a lead-in paragraph ("Here you go:"). The first
    timestamped paragraph wins, otherwise the last one.
    """
    paragraphs = parse_segments(reply)
    if not paragraphs:
        return original
    stamped = [p for p in paragraphs if p.timestamp]
    chosen = stamped[0] if stamped else paragraphs[-1]
    return Segment(text=chosen.text, timestamp=chosen.timestamp or original.timestamp)


class BatchRepurposer:
    def __init__(
        self,
        generator: TextGenerator,
        answers,
        batch_size: int = BATCH_SIZE,
        temperature: float = BATCH_TEMPERATURE,
        max_tokens: int = BATCH_MAX_TOKENS,
    ):
        self.generator = generator
        self.profile_context = build_profile_context(answers)
        self.batch_size = batch_size
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def repurpose_segments(self, segments: list[Segment]) -> list[Segment]:
        repurposed: list[Segment] = []
        for start in range(0, len(segments), self.batch_size):
            batch = segments[start:start + self.batch_size]
            prompt = get_batch_repurpose_prompt(self.profile_context, number_batch(batch, start + 1))
            try:
                reply = await self.generator.generate(
                    [
                        {"role": "system", "content": REPURPOSE_SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
            except Exception as e:
                logger.error("Batch %d-%d failed, keeping originals: %s", start + 1, start + len(batch), e)
                repurposed.extend(batch)
                continue
            repurposed.extend(parse_batch_response(reply, batch))
        return repurposed


class RagRepurposer:
    """Per-segment RAG. When no thread can be opened, hands the run to ``fallback`` if one is set."""

    def __init__(
        self,
        backboard: BackboardClient,
        assistant_id: str,
        fallback: Optional[RepurposeStrategy] = None,
    ):
        self.backboard = backboard
        self.assistant_id = assistant_id
        self.fallback = fallback

    async def repurpose_segments(self, segments: list[Segment]) -> list[Segment]:
        try:
            thread_id = await self.backboard.create_thread(self.assistant_id)
        except BackboardError as e:
            if self.fallback is not None:
                logger.warning("Could not open a RAG thread, falling back to %s: %s", type(self.fallback).__name__, e)
                return await self.fallback.repurpose_segments(segments)
            raise RepurposeError(f"Could not open a thread for assistant {self.assistant_id}: {e}") from e

        repurposed: list[Segment] = []
        for index, segment in enumerate(segments, 1):
            try:
                reply = await self.backboard.send_message(
                    thread_id, get_rag_line_prompt(segment.render()), memory="readonly"
                )
                repurposed.append(parse_line_reply(reply, segment))
            except Exception as e:
                logger.warning("Segment %d/%d failed, keeping original: %s", index, len(segments), e)
                repurposed.append(segment)
        return repurposed


def select_strategy(
    profile,
    generator: Optional[TextGenerator],
    backboard: Optional[BackboardClient],
) -> Optional[RepurposeStrategy]:
    """RAG when backboard is configured and the profile is indexed, else batch, else nothing.

    The batch strategy also backs up RAG when a generator and answers are available.
    """
    if profile is None:
        return None
    batch = BatchRepurposer(generator, profile.answers) if generator is not None and profile.answers else None
    if backboard is not None and profile.assistant_id:
        return RagRepurposer(backboard, profile.assistant_id, fallback=batch)
    return batch


async def repurpose_script(original_script: str, strategy: RepurposeStrategy) -> str:
    segments = parse_segments(original_script)
    if not segments:
        return original_script

    repurposed = await strategy.repurpose_segments(segments)
    if len(repurposed) != len(segments):
        raise RepurposeError(f"Expected {len(segments)} segments, got {len(repurposed)}")

    result = format_segments(repurposed)
    # Segment text must not open new blank-line boundaries in the stored script
    if len(parse_segments(result)) != len(segments):
        raise RepurposeError(f"Repurposed script no longer splits into {len(segments)} segments")

    logger.info("Repurposed %d segments with %s", len(segments), type(strategy).__name__)
    return result
