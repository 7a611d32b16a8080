"""
Conversation state store.

One document per session (``sessions/{session_id}``) holding the guided-flow
fields below plus activity fields owned by the chat API.  All writes are
partial merges: a flow write never touches activity fields and an activity
write never touches flow fields.

Flow writes carry the ``version`` the controller read.  If another request
wrote the session in between, the write is rejected with
ConcurrentUpdateError instead of silently overwriting the other turn's step.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from app.classifier.intent_classifier import FlowIntent
from app.config import get_settings
from app.data.init_db import get_db
from app.errors import ConcurrentUpdateError, InvalidSessionId, StateStoreUnavailable
from app.logic.schemas import AwaitingStep

logger = logging.getLogger(__name__)
settings = get_settings()

FLOW_FIELDS = (
    "current_intent",
    "awaiting_step",
    "selected_program",
    "selected_branch",
    "selected_semester",
    "selected_scholarship",
    "last_scholarship_discussed",
    "step_started_at",
)

# Patch that ends any flow
IDLE_PATCH: dict[str, Any] = {name: None for name in FLOW_FIELDS}

# Client or credential failures surface as these
STORE_ERRORS = (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)

MAX_SESSION_ID_BYTES = 1500
_RESERVED_ID = re.compile(r"^__.*__$")


def check_session_id(session_id: str) -> str:
    """
    Session ids are client supplied and become document ids: no "/", not
    "." or "..", not "__reserved__", at most 1500 bytes.
    """
    if (
        not session_id
        or "/" in session_id
        or session_id in (".", "..")
        or _RESERVED_ID.match(session_id)
        or len(session_id.encode("utf-8")) > MAX_SESSION_ID_BYTES
    ):
        raise InvalidSessionId(f"Invalid session id {session_id[:40]!r}")
    return session_id


@dataclass(frozen=True)
class FlowState:
    current_intent: FlowIntent | None = None
    awaiting_step: AwaitingStep | None = None
    selected_program: str | None = None
    selected_branch: str | None = None
    selected_semester: int | None = None
    selected_scholarship: str | None = None
    last_scholarship_discussed: str | None = None
    step_started_at: datetime | None = None
    version: int = 0

    @property
    def is_active(self) -> bool:
        return self.current_intent is not None

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> "FlowState":
        data = data or {}
        intent = data.get("current_intent")
        step = data.get("awaiting_step")
        try:
            intent = FlowIntent(intent) if intent else None
            step = AwaitingStep(step) if step else None
        except ValueError:
            # Unknown values from an older deployment: treat the flow as ended
            logger.warning(f"Ignoring unknown flow state intent={intent!r} step={step!r}")
            intent, step = None, None
        semester = data.get("selected_semester")
        return cls(
            current_intent=intent,
            awaiting_step=step if intent is not None else None,
            selected_program=data.get("selected_program"),
            selected_branch=data.get("selected_branch"),
            selected_semester=int(semester) if semester is not None else None,
            selected_scholarship=data.get("selected_scholarship"),
            last_scholarship_discussed=data.get("last_scholarship_discussed"),
            step_started_at=data.get("step_started_at"),
            version=int(data.get("version") or 0),
        )


def _to_document(patch: dict[str, Any]) -> dict[str, Any]:
    """Keep only flow fields and store enums by value."""
    unknown = set(patch) - set(FLOW_FIELDS)
    if unknown:
        raise ValueError(f"Not a flow field: {sorted(unknown)}")
    return {
        key: value.value if hasattr(value, "value") else value
        for key, value in patch.items()
    }


def _check_step_invariant(current: dict[str, Any], update: dict[str, Any]) -> None:
    merged = {**current, **update}
    if merged.get("awaiting_step") and not merged.get("current_intent"):
        raise ValueError("awaiting_step requires current_intent")


class SessionStore(Protocol):
    def get(self, session_id: str) -> FlowState: ...

    def merge(
        self,
        session_id: str,
        patch: dict[str, Any],
        expected_version: int | None = None,
    ) -> int: ...

    def clear(self, session_id: str) -> None: ...

    def record_activity(self, session_id: str, language: str) -> None: ...

    def record_outcome(self, session_id: str, resolved: bool) -> None: ...


# ── Firestore ─────────────────────────────────────────────────

@firestore.transactional
def _merge_in_transaction(
    transaction,
    doc_ref,
    session_id: str,
    update: dict[str, Any],
    expected_version: int | None,
) -> int:
    snapshot = doc_ref.get(transaction=transaction)
    current = (snapshot.to_dict() or {}) if snapshot.exists else {}
    version = int(current.get("version") or 0)
    if expected_version is not None and version != expected_version:
        raise ConcurrentUpdateError(session_id, expected_version, version)
    _check_step_invariant(current, update)

    payload = {**update, "version": version + 1, "updated_at": firestore.SERVER_TIMESTAMP}
    if not snapshot.exists:
        payload["created_at"] = firestore.SERVER_TIMESTAMP
    transaction.set(doc_ref, payload, merge=True)
    return version + 1


class FirestoreSessionStore:
    def __init__(self, collection: str | None = None):
        self.collection = collection or settings.SESSIONS_COLLECTION

    def _doc(self, session_id: str):
        check_session_id(session_id)
        db = get_db()
        if db is None:
            raise StateStoreUnavailable("Firestore not available")
        try:
            return db, db.collection(self.collection).document(session_id)
        except ValueError as e:
            raise InvalidSessionId(str(e)) from e

    def get(self, session_id: str) -> FlowState:
        _, doc_ref = self._doc(session_id)
        try:
            snapshot = doc_ref.get()
        except STORE_ERRORS as e:
            logger.error(f"Reading session {session_id} failed: {e}", exc_info=True)
            raise StateStoreUnavailable(str(e)) from e
        return FlowState.from_document(snapshot.to_dict() if snapshot.exists else None)

    def merge(self, session_id, patch, expected_version=None) -> int:
        db, doc_ref = self._doc(session_id)
        update = _to_document(patch)
        try:
            return _merge_in_transaction(db.transaction(), doc_ref, session_id, update, expected_version)
        except STORE_ERRORS as e:
            logger.error(f"Writing session {session_id} failed: {e}", exc_info=True)
            raise StateStoreUnavailable(str(e)) from e

    def clear(self, session_id: str) -> None:
        self.merge(session_id, IDLE_PATCH)

    def record_activity(self, session_id: str, language: str) -> None:
        _, doc_ref = self._doc(session_id)
        payload: dict[str, Any] = {
            "language": language,
            "last_visit": firestore.SERVER_TIMESTAMP,
            "total_messages": firestore.Increment(1),
        }
        try:
            if not doc_ref.get().exists:
                payload["first_visit"] = firestore.SERVER_TIMESTAMP
            doc_ref.set(payload, merge=True)
        except STORE_ERRORS as e:
            raise StateStoreUnavailable(str(e)) from e

    def record_outcome(self, session_id: str, resolved: bool) -> None:
        _, doc_ref = self._doc(session_id)
        field = "resolved_queries" if resolved else "unresolved_queries"
        try:
            doc_ref.set({field: firestore.Increment(1)}, merge=True)
        except STORE_ERRORS as e:
            raise StateStoreUnavailable(str(e)) from e


# ── In-memory (tests / local development) ─────────────────────

class InMemorySessionStore:
    """Same semantics as the Firestore store, kept in a dict."""

    def __init__(self):
        self._docs: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def document(self, session_id: str) -> dict[str, Any]:
        """Raw copy of a session document (activity fields included)."""
        with self._lock:
            return dict(self._docs.get(session_id, {}))

    def get(self, session_id: str) -> FlowState:
        check_session_id(session_id)
        return FlowState.from_document(self.document(session_id))

    def merge(self, session_id, patch, expected_version=None) -> int:
        check_session_id(session_id)
        update = _to_document(patch)
        with self._lock:
            current = self._docs.setdefault(session_id, {})
            version = int(current.get("version") or 0)
            if expected_version is not None and version != expected_version:
                raise ConcurrentUpdateError(session_id, expected_version, version)
            _check_step_invariant(current, update)
            current.update(update)
            current["version"] = version + 1
            current["updated_at"] = datetime.now(timezone.utc)
            return version + 1

    def clear(self, session_id: str) -> None:
        self.merge(session_id, IDLE_PATCH)

    def record_activity(self, session_id: str, language: str) -> None:
        check_session_id(session_id)
        now = datetime.now(timezone.utc)
        with self._lock:
            doc = self._docs.setdefault(session_id, {})
            doc.setdefault("first_visit", now)
            doc["language"] = language
            doc["last_visit"] = now
            doc["total_messages"] = doc.get("total_messages", 0) + 1

    def record_outcome(self, session_id: str, resolved: bool) -> None:
        check_session_id(session_id)
        field = "resolved_queries" if resolved else "unresolved_queries"
        with self._lock:
            doc = self._docs.setdefault(session_id, {})
            doc[field] = doc.get(field, 0) + 1


@lru_cache
def get_session_store() -> SessionStore:
    backend = settings.SESSION_BACKEND.lower()
    if backend == "memory":
        logger.warning("Using in-memory session store; state is lost on restart")
        return InMemorySessionStore()
    return FirestoreSessionStore()
