"""backboard.io client: assistants, threads, memories and RAG messages.

One assistant per user (named ``backboard-profile-<user id>``) holds that
user's profile as memories. Each repurposing run or chat session opens its
own thread so context doesn't bleed between runs.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from scriptstudio.config import DEFAULT_BACKBOARD_URL
from scriptstudio.profile_context import build_profile_chunks

logger = logging.getLogger(__name__)

MEMORY_MODES = ("auto", "readonly", "off")
MIN_PROMPT_MEMORY_WORDS = 3


class BackboardError(Exception):
    """A backboard.io call failed (transport error or non-2xx response)."""


def _pick_id(payload: Any, *keys: str) -> str:
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if value:
                return str(value)
    raise BackboardError(f"Response is missing an id (looked for {', '.join(keys)})")


def assistant_name_for(user_id: str) -> str:
    return f"backboard-profile-{user_id}"


class BackboardClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BACKBOARD_URL,
        llm_provider: str = "openai",
        model_name: str = "gpt-4o",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("BACKBOARD_API_KEY is not configured")
        self.base_url = base_url.rstrip("/")
        self.llm_provider = llm_provider
        self.model_name = model_name
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout, connect=10.0)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"X-API-Key": self._api_key},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client().request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackboardError(
                f"{method} {path} returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise BackboardError(f"{method} {path} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackboardError(f"{method} {path} returned invalid JSON") from e

    # --- Assistants ---
    async def list_assistants(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/assistants")
        if isinstance(data, dict):
            data = data.get("assistants") or data.get("data") or []
        return data or []

    async def create_assistant(self, name: str, description: str = "") -> str:
        data = await self._request("POST", "/assistants", json={"name": name, "description": description})
        return _pick_id(data, "assistant_id", "assistantId", "id")

    async def get_or_create_assistant(self, user_id: str) -> str:
        """Return the user's assistant id, creating the assistant on first use."""
        name = assistant_name_for(user_id)
        for assistant in await self.list_assistants():
            if assistant.get("name") == name:
                return _pick_id(assistant, "assistant_id", "assistantId", "id")

        assistant_id = await self.create_assistant(name, description=f"Backboard profile assistant for user {user_id}")
        logger.info("Created backboard assistant %s for user %s", assistant_id, user_id)
        return assistant_id

    # --- Threads ---
    async def create_thread(self, assistant_id: str) -> str:
        data = await self._request("POST", f"/assistants/{assistant_id}/threads", json={})
        return _pick_id(data, "thread_id", "threadId", "id")

    # --- Memories ---
    async def add_memory(self, assistant_id: str, content: str, metadata: Optional[dict[str, Any]] = None) -> str:
        data = await self._request(
            "POST",
            f"/assistants/{assistant_id}/memories",
            json={"content": content, "metadata": metadata or {}},
        )
        return _pick_id(data, "memory_id", "memoryId", "id")

    async def delete_memory(self, assistant_id: str, memory_id: str) -> None:
        await self._request("DELETE", f"/assistants/{assistant_id}/memories/{memory_id}")

    # --- Messages ---
    async def send_message(self, thread_id: str, content: str, memory: str = "auto") -> str:
        """Send a message on a thread and return the assistant's reply text.

        ``memory`` controls RAG: "auto" reads and writes memories, "readonly"
        only retrieves them, "off" disables retrieval.
        """
        if memory not in MEMORY_MODES:
            raise ValueError(f"memory must be one of {MEMORY_MODES}, got {memory!r}")
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/messages",
            data={
                "content": content,
                "llm_provider": self.llm_provider,
                "model_name": self.model_name,
                "memory": memory,
                "stream": "false",
            },
        )
        if isinstance(data, dict):
            return (data.get("content") or "").strip()
        return ""


async def index_profile(
    client: BackboardClient,
    assistant_id: str,
    answers: Any,
    existing_memory_ids: Optional[list[str]] = None,
) -> list[str]:
    """Replace the assistant's profile memories with ones built from ``answers``.

    Old memories are deleted first. A failed delete or add is logged and
    skipped; the returned list holds exactly the memories created.
    """
    for memory_id in existing_memory_ids or []:
        try:
            await client.delete_memory(assistant_id, memory_id)
        except BackboardError as e:
            # Memory might already be deleted
            logger.warning("Could not delete memory %s: %s", memory_id, e)

    memory_ids: list[str] = []
    for chunk in build_profile_chunks(answers):
        if not chunk.content.strip():
            continue
        try:
            memory_ids.append(await client.add_memory(assistant_id, chunk.content, chunk.metadata))
        except BackboardError as e:
            logger.error("Could not add %s memory: %s", chunk.metadata.get("section"), e)

    logger.info("Indexed %d profile memories for assistant %s", len(memory_ids), assistant_id)
    return memory_ids


async def store_prompt_memory(
    client: BackboardClient,
    assistant_id: str,
    prompt: str,
    selected_text: str,
) -> Optional[str]:
    """Remember a user's edit request as a style preference. Trivial prompts are skipped."""
    if len(prompt.split()) < MIN_PROMPT_MEMORY_WORDS:
        return None
    content = f"""CREATOR EDITING PREFERENCE:
Request: {prompt.strip()}
Applied to: "{selected_text.strip()}"
"""
    return await client.add_memory(assistant_id, content, {"type": "prompt", "source": "script_edit"})
