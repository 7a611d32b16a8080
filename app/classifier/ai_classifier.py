"""
Optional AI category hint.

Asks the chat model to put an English query into one of a handful of
categories.  The flow classifier only consults the result after its own
keyword and pattern stages found nothing, and only when
USE_AI_CATEGORY_HINT is enabled.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from app.config import get_settings
from app.utils.translator import get_openai_client

logger = logging.getLogger(__name__)
settings = get_settings()

AI_CATEGORIES = ("fees", "timetable", "scholarships", "circulars", "general")


@dataclass(frozen=True)
class AIIntent:
    category: str = "general"
    keywords: list[str] = field(default_factory=list)
    confidence: float = 0.0

def parse_ai_intent(payload: str) -> AIIntent:
    """Parse the model's JSON answer; anything malformed becomes 'general'."""
    try:
        data = json.loads(payload or "{}")
    except json.JSONDecodeError:
        logger.warning(f"AI intent returned invalid JSON: {payload[:80]!r}")
        return AIIntent()
    if not isinstance(data, dict):
        return AIIntent()

    category = str(data.get("category", "general")).lower().strip()
    if category not in AI_CATEGORIES:
        category = "general"
    keywords = [str(k) for k in data.get("keywords") or [] if str(k).strip()]
    try:
        confidence = float(data.get("confidence", 0.0))
    except (TypeError, ValueError):
        confidence = 0.0
    return AIIntent(category=category, keywords=keywords, confidence=max(0.0, min(confidence, 1.0)))

def classify_intent_ai(english_text: str) -> AIIntent:
    """Categorise an English query. Never raises; failures yield 'general'."""
    if not english_text.strip() or not settings.OPENAI_API_KEY:
        return AIIntent()
    try:
        client = get_openai_client()
        response = client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {
                    "role": "system",
                    "content": (
                        "Classify a college student's question. Reply with a JSON object "
                        '{"category": one of "fees", "timetable", "scholarships", "circulars", '
                        '"general"; "keywords": list of key terms; "confidence": number 0-1}.'
                    ),
                },
                {"role": "user", "content": english_text},
            ],
            temperature=0,
            max_tokens=100,
            response_format={"type": "json_object"},
        )
        result = parse_ai_intent(response.choices[0].message.content or "")
    except Exception as e:
        logger.error(f"AI intent classification failed: {e}")
        return AIIntent()

    logger.info(f"AI intent: category={result.category}, confidence={result.confidence:.2f}")
    return result
