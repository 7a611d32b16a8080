"""
Per-field translation of class timetables.

Timetables are stored in English.  For other languages each entry's
subject, faculty and venue are translated on their own (one
``subject|faculty|venue`` request per distinct entry) so the day/time
structure of the assembled message can never be damaged by a translator.
Times are never translated.  Any entry the AI translator cannot handle
falls back to the glossary.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from functools import lru_cache

from app.config import get_settings
from app.errors import TranslationError
from app.logic.campus_data import ClassEntry, ClassTimetable
from app.utils.glossary import glossary_translate
from app.utils.languages import LANGUAGE_PROMPT_NAMES, SOURCE_LANGUAGE
from app.utils.translator import get_openai_client

logger = logging.getLogger(__name__)
settings = get_settings()


def parse_fields(payload: str, entry: ClassEntry) -> ClassEntry:
    """
    Parse a ``subject|faculty|venue`` answer.  Empty fields keep the
    original value; a malformed answer raises TranslationError.
    """
    parts = [p.strip() for p in (payload or "").strip().split("|")]
    if len(parts) != 3:
        raise TranslationError(f"Expected 'subject|faculty|venue', got {payload[:80]!r}")
    subject, faculty, venue = parts
    return replace(
        entry,
        subject=subject or entry.subject,
        faculty=(faculty or entry.faculty) if entry.faculty else None,
        venue=(venue or entry.venue) if entry.venue else None,
    )

@lru_cache(maxsize=512)
def _request_fields(subject: str, faculty: str, venue: str, target_language: str) -> str:
    language_name = LANGUAGE_PROMPT_NAMES.get(target_language, target_language)
    prompt = (
        f"Translate this academic timetable information from English to {language_name}.\n"
        "Rules:\n"
        "1. Translate subject names completely.\n"
        "2. Translate venue types, keep room codes (LH-6, TB-04, CS-101) as they are.\n"
        "3. Keep faculty names as they are, only translate titles.\n"
        "4. Answer in EXACTLY this format: subject|faculty|venue (leave a field empty if it was empty).\n\n"
        f"Subject: {subject}\nFaculty: {faculty}\nVenue: {venue}"
    )
    try:
        response = get_openai_client().chat.completions.create(
            model=settings.TRANSLATION_MODEL,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
            max_tokens=300,
        )
        content = (response.choices[0].message.content or "").strip()
    except Exception as e:
        raise TranslationError(f"Timetable entry translation failed: {e}") from e
    if not content:
        raise TranslationError("Timetable entry translation returned empty text")
    return content

def translate_entry_primary(entry: ClassEntry, target_language: str) -> ClassEntry:
    payload = _request_fields(entry.subject, entry.faculty or "", entry.venue or "", target_language)
    return parse_fields(payload, entry)

def translate_entry_glossary(entry: ClassEntry, target_language: str) -> ClassEntry:
    return replace(
        entry,
        subject=glossary_translate(entry.subject, target_language),
        faculty=glossary_translate(entry.faculty, target_language) if entry.faculty else None,
        venue=glossary_translate(entry.venue, target_language) if entry.venue else None,
    )

def translate_entry(entry: ClassEntry, target_language: str) -> ClassEntry:
    if target_language == SOURCE_LANGUAGE:
        return entry
    try:
        return translate_entry_primary(entry, target_language)
    except TranslationError as e:
        logger.warning(f"Using glossary for timetable entry '{entry.subject}': {e}")
        return translate_entry_glossary(entry, target_language)

def translate_timetable(timetable: ClassTimetable, target_language: str) -> ClassTimetable:
    """Return a copy of *timetable* with every entry translated."""
    if target_language == SOURCE_LANGUAGE:
        return timetable
    logger.info(
        f"Translating timetable {timetable.program_code} sem {timetable.semester} to {target_language}"
    )
    days = {
        day: [translate_entry(entry, target_language) for entry in entries]
        for day, entries in timetable.timetable.items()
    }
    return replace(timetable, timetable=days)
