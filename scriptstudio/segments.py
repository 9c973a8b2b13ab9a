"""Transcript segments: the blank-line-delimited units a script is made of.

A transcript looks like::

    [00:05] Hello there

    [00:12] Thanks for watching

``parse_segments`` normalizes whitespace (chunks are trimmed and empty chunks
dropped), so ``format_segments(parse_segments(s))`` is semantically equal to
``s`` but not always byte-equal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

_BLANK_LINES = re.compile(r"\n\n+")
_TIMESTAMP_MARKER = re.compile(r"^\[(\d+:\d+)\]\s*(.+)$", re.DOTALL)
_SENTENCE_END = re.compile(r"([.!?])\s+")


@dataclass(frozen=True)
class Segment:
    text: str
    timestamp: Optional[str] = None  # "MM:SS"

    def render(self) -> str:
        if self.timestamp:
            return f"[{self.timestamp}] {self.text}"
        return self.text


def parse_segments(text: str) -> list[Segment]:
    segments: list[Segment] = []
    for chunk in _BLANK_LINES.split(text or ""):
        chunk = chunk.strip()
        if not chunk:
            continue
        match = _TIMESTAMP_MARKER.match(chunk)
        if match:
            segments.append(Segment(text=match.group(2).strip(), timestamp=match.group(1)))
        else:
            segments.append(Segment(text=chunk))
    return segments


def format_segments(segments: list[Segment]) -> str:
    return "\n\n".join(segment.render() for segment in segments)


def format_timestamp(seconds: float) -> str:
    """Convert seconds to an 'MM:SS' marker, e.g. 65.4 -> '01:05'."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def format_transcription(response: Any) -> str:
    """Turn a speech-to-text response into script text.

    Structured responses (with ``segments``) become ``[MM:SS] text`` blocks;
    flat text gets a blank line after each sentence; strings pass through.
    """
    if isinstance(response, str):
        return response

    raw_segments = _field(response, "segments")
    if raw_segments:
        blocks = []
        for seg in raw_segments:
            text = (_field(seg, "text", "") or "").strip()
            if not text:
                continue
            start = _field(seg, "start", 0.0) or 0.0
            blocks.append(Segment(text=text, timestamp=format_timestamp(start)))
        return format_segments(blocks)

    text = _field(response, "text")
    if text:
        return break_sentences(text)

    return ""


def break_sentences(text: str) -> str:
    return _SENTENCE_END.sub(r"\1\n\n", text).strip()
