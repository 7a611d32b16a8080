"""
Shared fixtures: in-memory session store, a fake campus catalog and an
offline (scripted) primary translator.  Nothing here touches the network or
Firestore.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.data.session_store import InMemorySessionStore
from app.errors import ReferenceDataError, TranslationError
from app.logic import flow_controller
from app.logic.campus_data import Branch, Circular, ClassEntry, ClassTimetable, Program, Scholarship
from app.logic.flow_controller import FlowController
from app.utils import timetable_translator, translator


def _date(day: int) -> datetime:
    return datetime(2024, 7, day, tzinfo=timezone.utc)


PROGRAMS = [
    Program(code="BTECH", name={"en": "Bachelor of Technology", "hi": "बैचलर ऑफ टेक्नोलॉजी"}, duration=8),
    Program(code="MCA", name={"en": "Master of Computer Applications"}, duration=4),
    Program(code="MBA", name={"en": "Master of Business Administration"}, duration=4, is_active=False),
]

BRANCHES = [
    Branch(
        program_code="BTECH",
        code="CSE",
        name={"en": "Computer Science and Engineering", "hi": "कंप्यूटर विज्ञान और इंजीनियरिंग"},
        semester_fee=125000,
    ),
    Branch(program_code="BTECH", code="CSE_AI_ML", name={"en": "CSE (AI & ML)"}, semester_fee=135000),
    Branch(
        program_code="BTECH",
        code="ECE",
        name={"en": "Electronics and Communication Engineering"},
        semester_fee=110000,
    ),
    Branch(program_code="BTECH", code="MECH", name={"en": "Mechanical Engineering"}, semester_fee=95000, is_active=False),
    Branch(program_code="MCA", code="MCA_GEN", name={"en": "General"}, semester_fee=90000),
]

TIMETABLES = [
    ClassTimetable(
        program_code="BTECH",
        semester=1,
        academic_year="2024-25",
        timetable={
            "MONDAY": [
                ClassEntry(time="09:00-10:00", subject="Mathematics-I", faculty="Dr. Rao", venue="LH-6"),
                ClassEntry(time="10:00-12:00", subject="C Programming Lab", venue="Lab"),
            ],
            "TUESDAY": [],
            "WEDNESDAY": [
                ClassEntry(time="09:00-10:00", subject="Physics", faculty="Dr. Iyer", venue="Lecture Hall"),
            ],
        },
    ),
]

SCHOLARSHIPS = [
    Scholarship(
        name={"en": "Post-Matric Scholarship", "hi": "पोस्ट-मैट्रिक छात्रवृत्ति"},
        description={"en": "Support for SC/ST/OBC students studying after class 10."},
        eligibility={"en": "Family income below ₹2,50,000 per year."},
        application_process={"en": "Apply on the National Scholarship Portal before 31 October."},
        amount="Up to ₹20,000 per year",
        aliases=["post matric", "post-matric"],
    ),
    Scholarship(
        name={"en": "Merit-cum-Means Scholarship"},
        description={"en": "For meritorious students from low-income families."},
        eligibility={"en": "At least 60% marks in the qualifying examination."},
        application_process={"en": "Submit the form at the scholarship cell with income proof."},
        aliases=["merit-cum-means", "merit cum means"],
    ),
    Scholarship(
        name={"en": "Sports Quota Grant"},
        description={"en": "Discontinued."},
        eligibility={"en": "-"},
        application_process={"en": "-"},
        is_active=False,
    ),
]

CIRCULARS = [
    Circular(title={"en": "Library hours extended"}, content={"en": "Open till 10 PM."}, priority=1, published_date=_date(1)),
    Circular(title={"en": "Mid exam schedule"}, content={"en": "Mid exams start 15 July."}, priority=3, published_date=_date(2)),
    Circular(title={"en": "Fee payment deadline"}, content={"en": "Pay by 31 July."}, priority=3, published_date=_date(5)),
    Circular(title={"en": "Sports day"}, content={"en": "Held on 20 July."}, priority=2, published_date=_date(3)),
    Circular(title={"en": "Holiday notice"}, content={"en": "Closed on 17 July."}, priority=1, published_date=_date(6)),
    Circular(title={"en": "Old notice"}, content={"en": "Ignore."}, priority=0, published_date=_date(1)),
    Circular(title={"en": "Withdrawn"}, content={"en": "Withdrawn."}, priority=9, published_date=_date(9), is_active=False),
]


class FakeCatalog:
    """Same contract as CampusCatalog, backed by lists."""

    def __init__(
        self,
        programs=None,
        branches=None,
        timetables=None,
        scholarships=None,
        circulars=None,
        fail: bool = False,
    ):
        self.programs = PROGRAMS if programs is None else programs
        self.branches = BRANCHES if branches is None else branches
        self.timetables = TIMETABLES if timetables is None else timetables
        self.scholarships = SCHOLARSHIPS if scholarships is None else scholarships
        self.circulars = CIRCULARS if circulars is None else circulars
        self.fail = fail

    def _check(self):
        if self.fail:
            raise ReferenceDataError("catalog offline")

    def list_programs(self):
        self._check()
        return [p for p in self.programs if p.is_active]

    def get_program(self, program_code):
        return next((p for p in self.list_programs() if p.code == program_code), None)

    def list_branches(self, program_code):
        self._check()
        return [b for b in self.branches if b.program_code == program_code and b.is_active]

    def get_class_timetable(self, program_code, semester):
        self._check()
        return next(
            (t for t in self.timetables if t.program_code == program_code and t.semester == semester and t.is_active),
            None,
        )

    def list_scholarships(self):
        self._check()
        return [s for s in self.scholarships if s.is_active]

    def list_circulars(self, limit=5):
        self._check()
        active = [c for c in self.circulars if c.is_active]
        active.sort(key=lambda c: (c.priority, c.published_date), reverse=True)
        return active[:limit]


@pytest.fixture(autouse=True)
def offline_translation(monkeypatch):
    """
    Scripted primary translator ("[hi] text"); input translation is the
    identity and the timetable AI path is unavailable (glossary only).
    Returns the list of primary calls.
    """
    calls: list[tuple[str, str]] = []

    def fake_primary(text, target_language):
        calls.append((text, target_language))
        return f"[{target_language}] {text}"

    def no_entry_ai(entry, target_language):
        raise TranslationError("offline")

    monkeypatch.setattr(translator, "translate_primary", fake_primary)
    monkeypatch.setattr(flow_controller, "translate_to_english", lambda text, source_language: text)
    monkeypatch.setattr(timetable_translator, "translate_entry_primary", no_entry_ai)
    monkeypatch.setattr(flow_controller.settings, "USE_AI_CATEGORY_HINT", False)
    monkeypatch.setattr(flow_controller.settings, "TRANSLATE_INPUT", True)
    monkeypatch.setattr(translator.settings, "TRANSLATION_MAX_RETRIES", 1)
    translator.reset_translation_stats()
    yield calls
    translator.reset_translation_stats()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def controller(store, catalog):
    return FlowController(store, catalog)
