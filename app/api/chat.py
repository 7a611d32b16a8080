"""
Chat API – the endpoint in front of the flow controller:
  1. Rate limiting and input sanitisation
  2. Session activity bookkeeping (language, message counters)
  3. One flow-controller turn (classification, step handling, translation)
  4. Transcript, chat history and resolved / unresolved counters

Bookkeeping runs off the event loop and never fails a reply.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import defaultdict

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from app.config import get_settings
from app.data.conversation_log import get_conversation_log
from app.data.session_store import check_session_id, get_session_store
from app.errors import InvalidSessionId, StateStoreUnavailable
from app.logic.flow_controller import TurnResult, get_flow_controller
from app.utils.languages import SUPPORTED_LANGUAGES, normalise_language
from app.utils.translator import get_translation_stats
from app.utils.validators import sanitise_input

logger = logging.getLogger(__name__)

settings = get_settings()
router = APIRouter()

# ── Rate limiter (in-memory, per-IP) ─────────────────────────
_rate_buckets: dict[str, list[float]] = defaultdict(list)


def _check_rate_limit(ip: str) -> None:
    now = time.time()
    window = 60.0
    bucket = _rate_buckets[ip]
    # Purge old entries
    _rate_buckets[ip] = [t for t in bucket if now - t < window]
    if len(_rate_buckets[ip]) >= settings.RATE_LIMIT_PER_MINUTE:
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded. Please wait a moment and try again.",
        )
    _rate_buckets[ip].append(now)


# ── Request / Response models ─────────────────────────────────

class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=1000)
    session_id: str | None = None
    language: str | None = None  # e.g. 'en', 'hi', 'ta'


class OptionModel(BaseModel):
    id: str
    label: str
    value: str


class ChatResponse(BaseModel):
    reply: str
    session_id: str
    language: str
    options: list[OptionModel] = []
    requires_next_step: bool = False
    current_step: str | None = None
    final_answer: str | None = None
    intent: str | None = None
    translation_method: str | None = None  # None for pre-localised system messages
    translated: bool = True


class ClearSessionRequest(BaseModel):
    session_id: str | None = None


def _to_response(turn: TurnResult) -> ChatResponse:
    translation = turn.translation
    return ChatResponse(
        reply=turn.message,
        session_id=turn.session_id,
        language=turn.language,
        options=[OptionModel(id=o.id, label=o.label, value=o.value) for o in turn.options],
        requires_next_step=turn.requires_next_step,
        current_step=turn.current_step.value if turn.current_step else None,
        final_answer=turn.final_answer,
        intent=turn.intent.value if turn.intent else None,
        translation_method=translation.method.value if translation else None,
        translated=translation.success if translation else True,
    )


def _require_valid_session_id(session_id: str) -> None:
    try:
        check_session_id(session_id)
    except InvalidSessionId as e:
        raise HTTPException(status_code=400, detail="Invalid session_id.") from e


def _record_activity(session_id: str, language: str) -> None:
    try:
        get_session_store().record_activity(session_id, language)
    except Exception as e:
        logger.warning(f"Could not record activity for session {session_id}: {e}", exc_info=True)


def _record_turn(session_id: str, user_msg: str, turn: TurnResult) -> None:
    """Transcript, history and outcome counters for a finished turn."""
    answered = turn.translation is not None and not turn.requires_next_step
    try:
        log = get_conversation_log()
        log.append_turn(session_id, user_msg, turn.message, turn.language, was_answered=answered)
        if turn.final_answer is not None:
            log.save_history(session_id, user_msg, turn.message, turn.language)
    except Exception as e:
        logger.warning(f"Could not log conversation for session {session_id}: {e}", exc_info=True)

    if turn.requires_next_step:
        return
    try:
        get_session_store().record_outcome(session_id, resolved=turn.final_answer is not None)
    except Exception as e:
        logger.warning(f"Could not record outcome for session {session_id}: {e}", exc_info=True)


# ── Routes ────────────────────────────────────────────────────

@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, request: Request):
    """
    Run one conversation turn through the guided flows.
    """
    # Rate limit
    client_ip = request.client.host if request.client else "unknown"
    _check_rate_limit(client_ip)

    # Sanitise
    user_msg = sanitise_input(req.message)
    session_id = req.session_id or str(uuid.uuid4())

    if not user_msg:
        raise HTTPException(status_code=400, detail="Message cannot be empty.")
    _require_valid_session_id(session_id)

    language = normalise_language(req.language or settings.DEFAULT_LANGUAGE)
    if req.language and req.language not in SUPPORTED_LANGUAGES:
        logger.info(f"Unsupported language '{req.language}' for session {session_id}, using {language}")

    await asyncio.to_thread(_record_activity, session_id, language)
    turn = await asyncio.to_thread(get_flow_controller().handle_turn, session_id, user_msg, language)
    await asyncio.to_thread(_record_turn, session_id, user_msg, turn)

    if turn.translation and not turn.translation.success:
        logger.warning(f"Session {session_id}: reply sent untranslated to {language}")

    return _to_response(turn)


# ── Health & metadata ─────────────────────────────────────────

@router.get("/health")
async def health():
    return {
        "status": "ok",
        "college": settings.COLLEGE_SHORT_NAME,
        "languages": list(SUPPORTED_LANGUAGES),
        "translation": get_translation_stats(),
    }


@router.post("/clear-session")
async def clear_session(req: ClearSessionRequest):
    """
    Reset the guided-flow state of a session.  Activity counters are kept.
    """
    session_id = req.session_id

    if not session_id:
        raise HTTPException(status_code=400, detail="session_id is required")
    _require_valid_session_id(session_id)

    try:
        await asyncio.to_thread(get_session_store().clear, session_id)
    except StateStoreUnavailable as e:
        logger.error(f"Could not clear session {session_id}: {e}")
        raise HTTPException(status_code=503, detail="Session store unavailable.") from e

    return {
        "status": "ok",
        "session_id": session_id,
        "cleared": ["flow_state"],
    }
