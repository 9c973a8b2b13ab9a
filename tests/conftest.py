"""Shared test fixtures and fakes for the upstream services."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fastapi import HTTPException, Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from scriptstudio.auth import get_current_user
from scriptstudio.backboard_client import BackboardError
from scriptstudio.database import get_session
from scriptstudio.main import app, get_backboard, get_text_generator, get_transcriber
from scriptstudio.models import AuthUser, Base
from scriptstudio.transcription import TranscriptionError

USERS = {
    "alice": {"id": "alice", "name": "Alice", "email": "alice@example.com"},
    "bob": {"id": "bob", "name": "Bob", "email": "bob@example.com"},
}


def make_openai_response(text="hello"):
    """Build a mock OpenAI ChatCompletion response."""
    msg = MagicMock()
    msg.content = text
    choice = MagicMock()
    choice.message = msg
    resp = MagicMock()
    resp.choices = [choice]
    return resp


class FakeTranscriber:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def transcribe(self, path, mime_type):
        self.calls.append((path.name, mime_type, path.read_bytes()))
        if self.error:
            raise TranscriptionError(self.error)
        return self.text


class FakeGenerator:
    """Text generator that answers from a callable (or a fixed string)."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, messages, temperature=0.3, max_tokens=2000):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if self.error:
            raise self.error
        if callable(self.reply):
            return self.reply(messages[-1]["content"])
        return self.reply


class FakeBackboard:
    """In-memory stand-in for BackboardClient."""

    def __init__(self, responder=None):
        self.responder = responder or (lambda content: "ok")
        self.assistants = {}
        self.threads = []
        self.messages = []
        self.memories = {}
        self.deleted = []
        self.fail_threads = False
        self._counter = 0

    def _next_id(self, prefix):
        self._counter += 1
        return f"{prefix}-{self._counter}"

    async def get_or_create_assistant(self, user_id):
        if user_id not in self.assistants:
            self.assistants[user_id] = self._next_id("asst")
        return self.assistants[user_id]

    async def create_thread(self, assistant_id):
        if self.fail_threads:
            raise BackboardError("thread creation failed")
        thread_id = self._next_id("thread")
        self.threads.append((assistant_id, thread_id))
        return thread_id

    async def add_memory(self, assistant_id, content, metadata=None):
        memory_id = self._next_id("mem")
        self.memories[memory_id] = {"assistant_id": assistant_id, "content": content, "metadata": metadata or {}}
        return memory_id

    async def delete_memory(self, assistant_id, memory_id):
        self.deleted.append(memory_id)
        self.memories.pop(memory_id, None)

    async def send_message(self, thread_id, content, memory="auto"):
        self.messages.append({"thread_id": thread_id, "content": content, "memory": memory})
        return self.responder(content)


def current_user_from_header(request: Request) -> AuthUser:
    user = USERS.get(request.headers.get("x-test-user", ""))
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return AuthUser(**user)


def as_user(user_id):
    return {"x-test-user": user_id}


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all([AuthUser(**user) for user in USERS.values()])
        await session.commit()

    yield factory
    await engine.dispose()


@pytest.fixture
def fakes():
    return SimpleNamespace(transcriber=FakeTranscriber(), generator=None, backboard=None)


@pytest_asyncio.fixture
async def client(session_factory, fakes, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_current_user] = current_user_from_header
    app.dependency_overrides[get_transcriber] = lambda: fakes.transcriber
    app.dependency_overrides[get_text_generator] = lambda: fakes.generator
    app.dependency_overrides[get_backboard] = lambda: fakes.backboard

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()
