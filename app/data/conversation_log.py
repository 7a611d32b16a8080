"""
Conversation transcripts.

Every chat turn is appended to ``conversations/{session_id}`` as a user
message and an assistant message.  A turn that carries a final answer is
also saved as a short ``chat_history`` entry that expires after
CHAT_HISTORY_TTL_DAYS (the collection's TTL policy deletes it).

Transcripts are bookkeeping only: the flow controller never reads them.
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Protocol

from google.cloud import firestore

from app.config import get_settings
from app.data.init_db import get_db
from app.data.session_store import STORE_ERRORS, check_session_id
from app.errors import StateStoreUnavailable

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_TITLE = "Campus Assistant Chat"
MAX_TITLE_LENGTH = 40

# Keeps letters, digits and the Devanagari, Bengali, Tamil and Telugu blocks (vowel signs included)
_TITLE_JUNK = re.compile(r"[^\w\s\u0900-\u097F\u0980-\u09FF\u0B80-\u0BFF\u0C00-\u0C7F]")


def chat_title(first_message: str) -> str:
    """Short history title from the user's message, cut at a word boundary."""
    cleaned = " ".join(_TITLE_JUNK.sub(" ", first_message or "").split())
    if not cleaned or cleaned.isdigit():
        return DEFAULT_TITLE
    if len(cleaned) <= MAX_TITLE_LENGTH:
        return cleaned

    truncated = cleaned[:MAX_TITLE_LENGTH]
    last_space = truncated.rfind(" ")
    if last_space > MAX_TITLE_LENGTH // 2:
        truncated = truncated[:last_space]
    return truncated + "..."


def _message(role: str, content: str, language: str, was_answered: bool, at: datetime) -> dict[str, Any]:
    return {
        "role": role,
        "content": content,
        "language": language,
        "timestamp": at,
        "was_answered": was_answered,
    }


def _turn_messages(user_message: str, reply: str, language: str, was_answered: bool) -> list[dict[str, Any]]:
    now = datetime.now(timezone.utc)
    return [
        _message("user", user_message, language, False, now),
        _message("assistant", reply, language, was_answered, now),
    ]


def _history_entry(session_id: str, user_message: str, reply: str, language: str) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "session_id": session_id,
        "title": chat_title(user_message),
        "messages": [
            {"role": "user", "content": user_message, "timestamp": now},
            {"role": "bot", "content": reply, "timestamp": now},
        ],
        "language": language,
        "created_at": now,
        "expires_at": now + timedelta(days=settings.CHAT_HISTORY_TTL_DAYS),
    }


class ConversationLog(Protocol):
    def append_turn(
        self,
        session_id: str,
        user_message: str,
        reply: str,
        language: str,
        was_answered: bool,
    ) -> None: ...

    def save_history(self, session_id: str, user_message: str, reply: str, language: str) -> None: ...


# ── Firestore ─────────────────────────────────────────────────

class FirestoreConversationLog:
    def __init__(self, collection: str | None = None, history_collection: str | None = None):
        self.collection = collection or settings.CONVERSATIONS_COLLECTION
        self.history_collection = history_collection or settings.CHAT_HISTORY_COLLECTION

    def _db(self):
        db = get_db()
        if db is None:
            raise StateStoreUnavailable("Firestore not available")
        return db

    def append_turn(self, session_id, user_message, reply, language, was_answered) -> None:
        check_session_id(session_id)
        doc_ref = self._db().collection(self.collection).document(session_id)
        payload: dict[str, Any] = {
            "session_id": session_id,
            "messages": firestore.ArrayUnion(_turn_messages(user_message, reply, language, was_answered)),
            "last_message_at": firestore.SERVER_TIMESTAMP,
            "is_active": True,
        }
        try:
            if not doc_ref.get().exists:
                payload["language"] = language
                payload["started_at"] = firestore.SERVER_TIMESTAMP
            doc_ref.set(payload, merge=True)
        except STORE_ERRORS as e:
            raise StateStoreUnavailable(str(e)) from e

    def save_history(self, session_id, user_message, reply, language) -> None:
        entry = _history_entry(session_id, user_message, reply, language)
        try:
            self._db().collection(self.history_collection).add(entry)
        except STORE_ERRORS as e:
            raise StateStoreUnavailable(str(e)) from e
        logger.info(f"Saved chat history '{entry['title']}' for session {session_id}")


# ── In-memory (tests / local development) ─────────────────────

class InMemoryConversationLog:
    def __init__(self):
        self.conversations: dict[str, dict[str, Any]] = {}
        self.history: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def append_turn(self, session_id, user_message, reply, language, was_answered) -> None:
        check_session_id(session_id)
        now = datetime.now(timezone.utc)
        with self._lock:
            doc = self.conversations.setdefault(
                session_id,
                {"session_id": session_id, "language": language, "started_at": now, "messages": []},
            )
            doc["messages"].extend(_turn_messages(user_message, reply, language, was_answered))
            doc["last_message_at"] = now
            doc["is_active"] = True

    def save_history(self, session_id, user_message, reply, language) -> None:
        with self._lock:
            self.history.append(_history_entry(session_id, user_message, reply, language))


@lru_cache
def get_conversation_log() -> ConversationLog:
    if settings.SESSION_BACKEND.lower() == "memory":
        return InMemoryConversationLog()
    return FirestoreConversationLog()
