"""Conversation transcripts and chat-history entries."""

import pytest
from google.cloud import firestore

from app.data import conversation_log
from app.data.conversation_log import (
    DEFAULT_TITLE,
    FirestoreConversationLog,
    InMemoryConversationLog,
    chat_title,
)
from app.errors import InvalidSessionId

test_cases_title = [
    ("What are the semester fees?", "What are the semester fees"),
    ("   ", DEFAULT_TITLE),
    ("12345", DEFAULT_TITLE),
    ("फीस कितनी है?", "फीस कितनी है"),
    (
        "Please show me the class timetable for semester three of BTech",
        "Please show me the class timetable for...",
    ),
    ("x" * 60, "x" * 40 + "..."),
]


class TestChatTitle:
    @pytest.mark.parametrize("message, expected", test_cases_title)
    def test_title(self, message, expected):
        assert chat_title(message) == expected


class TestInMemoryLog:
    def test_turns_append_in_order(self):
        log = InMemoryConversationLog()
        log.append_turn("s1", "fees", "Please select your program:", "en", was_answered=False)
        log.append_turn("s1", "BTECH", "Please select your branch:", "en", was_answered=False)

        messages = log.conversations["s1"]["messages"]
        assert len(messages) == 4
        assert messages[2] == {
            "role": "user",
            "content": "BTECH",
            "language": "en",
            "timestamp": messages[2]["timestamp"],
            "was_answered": False,
        }

    def test_language_kept_from_first_turn(self):
        log = InMemoryConversationLog()
        log.append_turn("s1", "fees", "...", "hi", was_answered=False)
        log.append_turn("s1", "fees", "...", "ta", was_answered=False)
        assert log.conversations["s1"]["language"] == "hi"
        assert log.conversations["s1"]["messages"][-1]["language"] == "ta"

    def test_invalid_session_id(self):
        with pytest.raises(InvalidSessionId):
            InMemoryConversationLog().append_turn("a/b", "fees", "...", "en", was_answered=False)


class _RecordingDoc:
    def __init__(self, exists):
        self.exists = exists
        self.writes = []

    def get(self):
        return self

    def set(self, payload, merge=False):
        self.writes.append((payload, merge))


class _RecordingDb:
    def __init__(self, exists=False):
        self.doc = _RecordingDoc(exists)
        self.added = []

    def collection(self, name):
        self.collection_name = name
        return self

    def document(self, session_id):
        return self.doc

    def add(self, entry):
        self.added.append((self.collection_name, entry))


class TestFirestoreLog:
    def test_first_turn_creates_conversation(self, monkeypatch):
        db = _RecordingDb(exists=False)
        monkeypatch.setattr(conversation_log, "get_db", lambda: db)

        FirestoreConversationLog().append_turn("s1", "fees", "Please select your program:", "hi", was_answered=False)

        payload, merge = db.doc.writes[0]
        assert merge is True
        assert isinstance(payload["messages"], firestore.ArrayUnion)
        assert [m["role"] for m in payload["messages"].values] == ["user", "assistant"]
        assert payload["language"] == "hi"
        assert payload["started_at"] is firestore.SERVER_TIMESTAMP
        assert payload["last_message_at"] is firestore.SERVER_TIMESTAMP

    def test_later_turns_keep_start(self, monkeypatch):
        db = _RecordingDb(exists=True)
        monkeypatch.setattr(conversation_log, "get_db", lambda: db)

        FirestoreConversationLog().append_turn("s1", "CSE", "The fee is ₹1,25,000", "en", was_answered=True)

        payload, _ = db.doc.writes[0]
        assert "started_at" not in payload
        assert "language" not in payload
        assert payload["messages"].values[1]["was_answered"] is True

    def test_history_entry(self, monkeypatch):
        db = _RecordingDb()
        monkeypatch.setattr(conversation_log, "get_db", lambda: db)
        monkeypatch.setattr(conversation_log.settings, "CHAT_HISTORY_TTL_DAYS", 7)

        FirestoreConversationLog().save_history("s1", "latest circulars", "📢 Latest Circulars", "te")

        collection, entry = db.added[0]
        assert collection == "chat_history"
        assert entry["title"] == "latest circulars"
        assert (entry["expires_at"] - entry["created_at"]).days == 7
