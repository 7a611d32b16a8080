"""
Response translation middleware.

Every outbound message goes through `translate_response`, which walks a fixed
fallback chain:

  1. primary translator (OpenAI), validated; retried a bounded number of times
  2. glossary translator, validated with the same heuristics
  3. passthrough of the English text, marked ``success=False``

Step 3 is the only path on which English text may reach a non-English
session; it is logged at ERROR and counted so translator degradation is
visible on the health endpoint.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import replace

from openai import OpenAI

from app.config import get_settings
from app.errors import TranslationError
from app.logic.schemas import FlowResponse, Option, TranslationMethod, TranslationResult
from app.utils.glossary import expects_translation, glossary_translate, is_valid_translation
from app.utils.languages import LANGUAGE_PROMPT_NAMES, SOURCE_LANGUAGE

logger = logging.getLogger(__name__)
settings = get_settings()

_openai_client: OpenAI | None = None

# method -> count, reported by /health
_translation_stats: dict[str, int] = defaultdict(int)
_stats_lock = threading.Lock()


def get_openai_client() -> OpenAI:
    """Lazily built OpenAI client shared by every translation and classification call."""
    global _openai_client
    if _openai_client is None:
        _openai_client = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )
    return _openai_client


# ── External translator calls ─────────────────────────────────

def translate_primary(text: str, target_language: str) -> str:
    """
    Translate English *text* into *target_language* with the AI model.
    Raises TranslationError when the call fails or returns nothing.
    """
    language_name = LANGUAGE_PROMPT_NAMES.get(target_language, target_language)
    try:
        client = get_openai_client()
        response = client.chat.completions.create(
            model=settings.TRANSLATION_MODEL,
            messages=[
                {
                    "role": "system",
                    "content": (
                        f"Translate official college information from English to {language_name}. "
                        "Preserve the exact meaning and every detail. Do not add explanations. "
                        "Keep numbers, currency amounts, codes, emoji, line breaks and bullet "
                        "markers exactly as they are. Respond with ONLY the translation."
                    ),
                },
                {"role": "user", "content": text},
            ],
            temperature=0.2,
            max_tokens=min(2000, max(200, len(text) * 4)),
        )
        content = response.choices[0].message.content
    except Exception as e:
        raise TranslationError(f"Primary translation to {target_language} failed: {e}") from e

    translation = (content or "").strip()
    if not translation:
        raise TranslationError(f"Primary translation to {target_language} returned empty text")
    return translation


def translate_to_english(text: str, source_language: str) -> str:
    """
    Translate a user message into English for pattern matching.
    Falls back to the original text on any failure.
    """
    if source_language == SOURCE_LANGUAGE or not text.strip():
        return text
    language_name = LANGUAGE_PROMPT_NAMES.get(source_language, source_language)
    try:
        client = get_openai_client()
        response = client.chat.completions.create(
            model=settings.TRANSLATION_MODEL,
            messages=[
                {
                    "role": "system",
                    "content": (
                        f"Translate the following user query from {language_name} to English. "
                        "Keep technical terms (semester, fee, program codes) as they are. "
                        "Respond with ONLY the English translation, nothing else."
                    ),
                },
                {"role": "user", "content": text},
            ],
            temperature=0,
            max_tokens=150,
        )
        translation = (response.choices[0].message.content or "").strip()
        if translation:
            logger.info(f"Translated input '{text[:50]}' to '{translation[:50]}'")
            return translation
        logger.warning("Input translation returned empty text, using original")
        return text
    except Exception as e:
        logger.error(f"Input translation failed: {e}")
        return text


# ── Middleware ────────────────────────────────────────────────

def _count(method: str) -> None:
    with _stats_lock:
        _translation_stats[method] += 1


def translate_response(text: str, target_language: str) -> TranslationResult:
    """Render English *text* in *target_language* via the fallback chain."""
    if target_language == SOURCE_LANGUAGE:
        return TranslationResult(
            success=True,
            translated=text,
            method=TranslationMethod.PASSTHROUGH,
            language=SOURCE_LANGUAGE,
        )

    # Letterless text (semester numbers, amounts) goes straight to the glossary step
    attempts = 1 + max(0, settings.TRANSLATION_MAX_RETRIES) if expects_translation(text) else 0
    for attempt in range(1, attempts + 1):
        try:
            candidate = translate_primary(text, target_language)
        except TranslationError as e:
            logger.warning(f"Primary translation attempt {attempt}/{attempts} failed: {e}")
            continue
        if is_valid_translation(text, candidate, target_language):
            _count(TranslationMethod.PRIMARY.value)
            return TranslationResult(
                success=True,
                translated=candidate,
                method=TranslationMethod.PRIMARY,
                language=target_language,
            )
        logger.warning(
            f"Primary translation attempt {attempt}/{attempts} to {target_language} "
            f"failed validation ({len(candidate)} chars for {len(text)} chars input)"
        )

    if attempts:
        logger.warning(f"Falling back to glossary translation for {target_language}")
    glossary_text = glossary_translate(text, target_language)
    if is_valid_translation(text, glossary_text, target_language):
        _count(TranslationMethod.GLOSSARY.value)
        return TranslationResult(
            success=True,
            translated=glossary_text,
            method=TranslationMethod.GLOSSARY,
            language=target_language,
        )

    _count(TranslationMethod.PASSTHROUGH.value)
    logger.error(
        f"All translation methods failed for {target_language}; "
        f"returning English text: '{text[:60]}'"
    )
    return TranslationResult(
        success=False,
        translated=text,
        method=TranslationMethod.PASSTHROUGH,
        language=target_language,
    )


def translate_options(options: list[Option], target_language: str) -> list[Option]:
    """
    Translate label and value of every option independently.
    One option failing never stops the others from being translated.
    """
    if target_language == SOURCE_LANGUAGE or not options:
        return list(options)

    translated: list[Option] = []
    for option in options:
        label = translate_response(option.label, target_language)
        value = translate_response(option.value, target_language)
        translated.append(replace(option, label=label.translated, value=value.translated))
    return translated


def render_flow_response(response: FlowResponse, target_language: str) -> tuple[FlowResponse, TranslationResult]:
    """
    Apply the middleware to a whole flow response (message, final answer and
    options).  Returns the rendered response and the message's result.
    """
    if response.rendering is not None:
        rendered = replace(response, options=translate_options(response.options, target_language))
        return rendered, response.rendering

    result = translate_response(response.message, target_language)
    final_answer = None
    if response.final_answer is not None:
        final_answer = (
            result.translated
            if response.final_answer == response.message
            else translate_response(response.final_answer, target_language).translated
        )

    rendered = replace(
        response,
        message=result.translated,
        final_answer=final_answer,
        options=translate_options(response.options, target_language),
        rendering=result,
    )
    return rendered, result


def get_translation_stats() -> dict[str, int]:
    with _stats_lock:
        return dict(_translation_stats)


def reset_translation_stats() -> None:
    with _stats_lock:
        _translation_stats.clear()
