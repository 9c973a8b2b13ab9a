"""ScriptBot: a chat relay over a backboard.io thread.

Replies may carry a suggested edit in a fenced code block. The first block
becomes ``suggested_edit``; every block is stripped from the chat text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from scriptstudio.backboard_client import BackboardClient
from scriptstudio.utils import get_scriptbot_prompt

logger = logging.getLogger(__name__)

EDIT_PLACEHOLDER = "Here's my suggested edit:"

_FENCED_BLOCK = re.compile(r"```[\s\S]*?```")


@dataclass
class ChatReply:
    reply: str
    suggested_edit: Optional[str] = None


def _block_body(block: str) -> str:
    return block[3:-3].strip()


def split_suggested_edit(text: str) -> ChatReply:
    text = (text or "").strip()
    blocks = _FENCED_BLOCK.findall(text)
    if not blocks:
        return ChatReply(reply=text)

    reply = _FENCED_BLOCK.sub("", text).strip()
    return ChatReply(reply=reply or EDIT_PLACEHOLDER, suggested_edit=_block_body(blocks[0]))


async def converse(backboard: BackboardClient, thread_id: str, message: str, script_content: str) -> ChatReply:
    """Send one chat turn on an existing thread. Thread lifetime is the caller's concern."""
    raw = await backboard.send_message(thread_id, get_scriptbot_prompt(script_content, message), memory="readonly")
    result = split_suggested_edit(raw)
    logger.info("ScriptBot replied on thread %s (suggested edit: %s)", thread_id, result.suggested_edit is not None)
    return result
