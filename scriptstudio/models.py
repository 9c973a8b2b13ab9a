# scriptstudio/models.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Better Auth tables (owned by the frontend's auth server, read here) ---
class AuthUser(Base):
    __tablename__ = "user"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class AuthSession(Base):
    __tablename__ = "session"

    id = Column(Text, primary_key=True)
    token = Column(Text, nullable=False, unique=True)
    user_id = Column(Text, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)


# --- Application tables ---
class VideoScript(Base):
    __tablename__ = "video_script"

    id = Column(Text, primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)
    script = Column(Text, nullable=True)  # Null until transcription completes
    repurposed_script = Column(Text, nullable=True)
    user_id = Column(Text, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class BackboardProfile(Base):
    __tablename__ = "backboard_profile"

    id = Column(Text, primary_key=True, default=_new_id)
    user_id = Column(Text, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    answers = Column(JSONType, nullable=False)
    assistant_id = Column(String, nullable=True)  # backboard.io assistant, set on first indexing
    memory_ids = Column(JSONType, nullable=True)  # memories created from the current answers
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
