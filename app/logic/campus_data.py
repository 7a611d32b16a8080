"""
Campus reference data – programs, branches, class timetables, scholarships
and circulars, read from Firestore.

Every lookup returns only active records.  Firestore failures are raised as
ReferenceDataError so the flow controller can degrade to its
"none available" messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from app.config import get_settings
from app.data.init_db import get_db
from app.errors import ReferenceDataError
from app.utils.languages import SOURCE_LANGUAGE

logger = logging.getLogger(__name__)
settings = get_settings()

WEEKDAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY")

LocalizedText = dict[str, str]


def localized(text: LocalizedText | str | None, language: str = SOURCE_LANGUAGE) -> str:
    """Pick *language* from a localized mapping, falling back to English."""
    if text is None:
        return ""
    if isinstance(text, str):
        return text
    return text.get(language) or text.get(SOURCE_LANGUAGE) or next(iter(text.values()), "")


@dataclass
class Program:
    code: str
    name: LocalizedText
    duration: int = 8  # semesters
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return localized(self.name) or self.code


@dataclass
class Branch:
    program_code: str
    code: str
    name: LocalizedText
    semester_fee: int
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return localized(self.name) or self.code


@dataclass
class ClassEntry:
    time: str
    subject: str
    faculty: str | None = None
    venue: str | None = None


@dataclass
class ClassTimetable:
    program_code: str
    semester: int
    timetable: dict[str, list[ClassEntry]] = field(default_factory=dict)
    academic_year: str | None = None
    is_active: bool = True

    def days(self) -> list[tuple[str, list[ClassEntry]]]:
        """Monday..Saturday in order, skipping days without classes."""
        return [(day, self.timetable[day]) for day in WEEKDAYS if self.timetable.get(day)]


@dataclass
class Scholarship:
    name: LocalizedText
    description: LocalizedText
    eligibility: LocalizedText
    application_process: LocalizedText
    amount: str | None = None
    aliases: list[str] = field(default_factory=list)
    deadline: datetime | None = None
    is_active: bool = True

    @property
    def key(self) -> str:
        """Stable identifier remembered in the session (English name)."""
        return localized(self.name)

    def search_terms(self) -> list[str]:
        terms = [value for value in self.name.values() if value] + list(self.aliases)
        return [t.lower().strip() for t in terms if t.strip()]


@dataclass
class Circular:
    title: LocalizedText
    content: LocalizedText
    category: str = "general"
    priority: int = 0
    published_date: datetime | None = None
    last_date: datetime | None = None
    is_active: bool = True


# ── Document parsing ──────────────────────────────────────────

def _text(value: Any) -> LocalizedText:
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items() if v}
    if value:
        return {SOURCE_LANGUAGE: str(value)}
    return {}


def program_from_doc(data: dict) -> Program:
    return Program(
        code=str(data["code"]).upper(),
        name=_text(data.get("name")),
        duration=int(data.get("duration") or 8),
        is_active=bool(data.get("is_active", True)),
    )


def branch_from_doc(data: dict) -> Branch:
    return Branch(
        program_code=str(data["program_code"]).upper(),
        code=str(data["code"]).upper(),
        name=_text(data.get("name")),
        semester_fee=int(data.get("semester_fee") or 0),
        is_active=bool(data.get("is_active", True)),
    )


def timetable_from_doc(data: dict) -> ClassTimetable:
    days: dict[str, list[ClassEntry]] = {}
    for day, entries in (data.get("timetable") or {}).items():
        days[str(day).upper()] = [
            ClassEntry(
                time=str(e.get("time", "")),
                subject=str(e.get("subject", "")),
                faculty=e.get("faculty") or None,
                venue=e.get("venue") or None,
            )
            for e in entries or []
        ]
    return ClassTimetable(
        program_code=str(data["program_code"]).upper(),
        semester=int(data["semester"]),
        timetable=days,
        academic_year=data.get("academic_year"),
        is_active=bool(data.get("is_active", True)),
    )


def scholarship_from_doc(data: dict) -> Scholarship:
    return Scholarship(
        name=_text(data.get("name")),
        description=_text(data.get("description")),
        eligibility=_text(data.get("eligibility")),
        application_process=_text(data.get("application_process")),
        amount=data.get("amount"),
        aliases=[str(a) for a in data.get("aliases") or []],
        deadline=data.get("deadline"),
        is_active=bool(data.get("is_active", True)),
    )


def circular_from_doc(data: dict) -> Circular:
    return Circular(
        title=_text(data.get("title")),
        content=_text(data.get("content")),
        category=data.get("category") or "general",
        priority=int(data.get("priority") or 0),
        published_date=data.get("published_date"),
        last_date=data.get("last_date"),
        is_active=bool(data.get("is_active", True)),
    )


# ── Firestore catalog ─────────────────────────────────────────

class CampusCatalog:
    """Read-only lookups against the campus collections."""

    def _active(self, collection: str):
        db = get_db()
        if db is None:
            logger.warning("Firestore not available. Cannot query reference data.")
            raise ReferenceDataError("Firestore not available")
        return db.collection(collection).where(filter=FieldFilter("is_active", "==", True))

    def _fetch(self, query, what: str) -> list[dict]:
        try:
            rows = [doc.to_dict() for doc in query.stream()]
        except gcp_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore query for {what} failed: {e}")
            raise ReferenceDataError(f"{what} lookup failed") from e
        logger.info(f"Firestore query returned {len(rows)} {what}")
        return rows

    def list_programs(self) -> list[Program]:
        rows = self._fetch(self._active(settings.PROGRAMS_COLLECTION), "programs")
        return sorted((program_from_doc(r) for r in rows), key=lambda p: p.code)

    def get_program(self, program_code: str) -> Program | None:
        code = program_code.upper()
        return next((p for p in self.list_programs() if p.code == code), None)

    def list_branches(self, program_code: str) -> list[Branch]:
        query = self._active(settings.BRANCHES_COLLECTION).where(
            filter=FieldFilter("program_code", "==", program_code.upper())
        )
        rows = self._fetch(query, "branches")
        return sorted((branch_from_doc(r) for r in rows), key=lambda b: b.code)

    def get_class_timetable(self, program_code: str, semester: int) -> ClassTimetable | None:
        query = (
            self._active(settings.CLASS_TIMETABLES_COLLECTION)
            .where(filter=FieldFilter("program_code", "==", program_code.upper()))
            .where(filter=FieldFilter("semester", "==", semester))
            .limit(1)
        )
        rows = self._fetch(query, "class timetables")
        return timetable_from_doc(rows[0]) if rows else None

    def list_scholarships(self) -> list[Scholarship]:
        rows = self._fetch(self._active(settings.SCHOLARSHIPS_COLLECTION), "scholarships")
        return [scholarship_from_doc(r) for r in rows]

    def list_circulars(self, limit: int = 5) -> list[Circular]:
        query = (
            self._active(settings.CIRCULARS_COLLECTION)
            .order_by("priority", direction=firestore.Query.DESCENDING)
            .order_by("published_date", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        rows = self._fetch(query, "circulars")
        return [circular_from_doc(r) for r in rows]
