"""HTTP layer: /api/chat, /api/health, /api/clear-session."""

import pytest
from fastapi.testclient import TestClient

from app.api import chat as chat_api
from app.data.conversation_log import InMemoryConversationLog
from app.data.session_store import InMemorySessionStore
from app.logic.flow_controller import FlowController
from app.main import app


@pytest.fixture
def conversation_log():
    return InMemoryConversationLog()


@pytest.fixture
def client(monkeypatch, store, catalog, conversation_log):
    controller = FlowController(store, catalog)
    monkeypatch.setattr(chat_api, "get_flow_controller", lambda: controller)
    monkeypatch.setattr(chat_api, "get_session_store", lambda: store)
    monkeypatch.setattr(chat_api, "get_conversation_log", lambda: conversation_log)
    chat_api._rate_buckets.clear()
    yield TestClient(app)
    chat_api._rate_buckets.clear()


def post(client, message, session_id="api-session", language="en"):
    return client.post("/api/chat", json={"message": message, "session_id": session_id, "language": language})


class TestChat:
    def test_fees_flow_over_http(self, client, store):
        first = post(client, "What are the semester fees?").json()
        assert first["requires_next_step"] is True
        assert first["current_step"] == "program"
        assert first["intent"] == "SEMESTER_FEES"
        assert first["options"][0] == {"id": "BTECH", "label": "Bachelor of Technology", "value": "BTECH"}
        assert first["translation_method"] == "passthrough"
        assert first["translated"] is True

        post(client, "BTECH")
        final = post(client, "CSE").json()
        assert final["requires_next_step"] is False
        assert final["current_step"] is None
        assert "₹1,25,000" in final["final_answer"]

        doc = store.document("api-session")
        assert doc["total_messages"] == 3
        assert doc["resolved_queries"] == 1
        assert doc["language"] == "en"

    def test_session_id_generated(self, client):
        response = client.post("/api/chat", json={"message": "circulars"})
        assert response.status_code == 200
        assert response.json()["session_id"]

    def test_translated_reply(self, client):
        body = post(client, "फीस", language="hi").json()
        assert body["language"] == "hi"
        assert body["reply"] == "[hi] Please select your program:"
        assert body["translation_method"] == "primary"

    def test_static_fallback_counts_as_unresolved(self, client, store):
        body = post(client, "hello there", language="te").json()
        assert body["translation_method"] is None
        assert body["requires_next_step"] is False
        assert store.document("api-session")["unresolved_queries"] == 1

    def test_blank_message_rejected(self, client):
        assert post(client, "   ").status_code == 400

    def test_missing_message_rejected(self, client):
        assert client.post("/api/chat", json={"session_id": "x"}).status_code == 422

    def test_rate_limit(self, client, monkeypatch):
        monkeypatch.setattr(chat_api.settings, "RATE_LIMIT_PER_MINUTE", 2)
        assert post(client, "notice").status_code == 200
        assert post(client, "notice").status_code == 200
        assert post(client, "notice").status_code == 429


    @pytest.mark.parametrize("session_id", ["a/b", "..", "__meta__"])
    def test_unusable_session_id_rejected(self, client, session_id):
        assert post(client, "fees", session_id=session_id).status_code == 400


class TestBookkeeping:
    def test_transcript_per_turn(self, client, conversation_log):
        post(client, "What are the semester fees?")
        post(client, "BTECH")
        post(client, "CSE")

        doc = conversation_log.conversations["api-session"]
        messages = doc["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant"] * 3
        assert [m["content"] for m in messages[::2]] == ["What are the semester fees?", "BTECH", "CSE"]
        assert [m["was_answered"] for m in messages[1::2]] == [False, False, True]
        assert doc["language"] == "en"
        assert doc["last_message_at"] >= doc["started_at"]

    def test_final_answer_saved_to_history(self, client, conversation_log):
        post(client, "Show latest circulars please")
        assert len(conversation_log.history) == 1
        entry = conversation_log.history[0]
        assert entry["session_id"] == "api-session"
        assert entry["title"] == "Show latest circulars please"
        assert [m["role"] for m in entry["messages"]] == ["user", "bot"]
        assert entry["expires_at"] > entry["created_at"]

    def test_static_fallback_is_not_answered(self, client, conversation_log):
        post(client, "hello there", language="te")
        messages = conversation_log.conversations["api-session"]["messages"]
        assert messages[1]["was_answered"] is False
        assert conversation_log.history == []

    def test_bookkeeping_failures_never_fail_the_reply(self, client, monkeypatch, catalog):
        class FlakyStore(InMemorySessionStore):
            def record_activity(self, session_id, language):
                raise RuntimeError("auth refresh failed")

            def record_outcome(self, session_id, resolved):
                raise RuntimeError("auth refresh failed")

        class BrokenLog(InMemoryConversationLog):
            def append_turn(self, *args, **kwargs):
                raise RuntimeError("deadline exceeded")

        store = FlakyStore()
        controller = FlowController(store, catalog)
        monkeypatch.setattr(chat_api, "get_flow_controller", lambda: controller)
        monkeypatch.setattr(chat_api, "get_session_store", lambda: store)
        monkeypatch.setattr(chat_api, "get_conversation_log", lambda: BrokenLog())

        response = post(client, "circulars")
        assert response.status_code == 200
        assert response.json()["final_answer"]


class TestHealth:
    def test_reports_translation_stats(self, client):
        post(client, "notice", language="hi")
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert "hi" in body["languages"]
        assert body["translation"]["primary"] >= 1


class TestClearSession:
    def test_resets_flow_state(self, client, store):
        post(client, "fees")
        assert store.get("api-session").is_active

        response = client.post("/api/clear-session", json={"session_id": "api-session"})
        assert response.status_code == 200
        assert response.json()["cleared"] == ["flow_state"]
        assert not store.get("api-session").is_active
        assert store.document("api-session")["total_messages"] == 1

    def test_session_id_required(self, client):
        assert client.post("/api/clear-session", json={}).status_code == 400

    def test_unusable_session_id(self, client):
        assert client.post("/api/clear-session", json={"session_id": "a/b"}).status_code == 400
