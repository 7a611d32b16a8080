"""
Application settings – loaded once from environment variables / `.env`.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── College ───────────────────────────────────────────────
    COLLEGE_NAME: str = "Government Engineering College"
    COLLEGE_SHORT_NAME: str = "GEC"

    # ── Languages ─────────────────────────────────────────────
    DEFAULT_LANGUAGE: str = "en"
    TRANSLATE_INPUT: bool = True

    # ── OpenAI (primary translator / AI intent hint) ──────────
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    TRANSLATION_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 20.0
    TRANSLATION_MAX_RETRIES: int = 1
    USE_AI_CATEGORY_HINT: bool = False

    # ── Firestore ─────────────────────────────────────────────
    GOOGLE_CLOUD_PROJECT: str | None = None
    FIRESTORE_DATABASE: str = "(default)"
    SESSION_BACKEND: str = "firestore"  # "firestore" | "memory"
    SESSIONS_COLLECTION: str = "sessions"
    PROGRAMS_COLLECTION: str = "programs"
    BRANCHES_COLLECTION: str = "branches"
    CLASS_TIMETABLES_COLLECTION: str = "class_timetables"
    SCHOLARSHIPS_COLLECTION: str = "scholarships"
    CIRCULARS_COLLECTION: str = "circulars"
    CONVERSATIONS_COLLECTION: str = "conversations"
    CHAT_HISTORY_COLLECTION: str = "chat_history"
    CHAT_HISTORY_TTL_DAYS: int = 7

    # ── Flows ─────────────────────────────────────────────────
    CIRCULARS_LIMIT: int = 5

    # ── API ───────────────────────────────────────────────────
    RATE_LIMIT_PER_MINUTE: int = 30
    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
