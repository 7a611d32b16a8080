"""
Flow controller – the guided multi-turn dialogues.

Four flows:
  SEMESTER_FEES   program -> branch -> fee for that branch
  EXAM_TIMETABLE  program -> semester -> weekly class timetable
  SCHOLARSHIPS    open follow-up loop (list / summary / eligibility / how to apply)
  CIRCULARS       latest circulars, answered in one turn

Each turn:
  1. read the session's flow state
  2. classify the message (raw text first, English translation as fallback)
  3. decide a FlowTransition = English response + state patch
  4. persist the patch with ONE merge carrying the version that was read
  5. render the response in the user's language (translation middleware)

Topic change: while a flow is active, a message that classifies as a
different flow clears the old selections and starts the new flow in the same
turn.  A message with no flow keyword while a step is awaited is treated as
the answer to that step.

handle_turn never raises: store outages, concurrent writes and unexpected
errors all end in a pre-localised static message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from app.classifier.ai_classifier import classify_intent_ai
from app.classifier.intent_classifier import FlowIntent, detect_flow
from app.config import get_settings
from app.data.session_store import IDLE_PATCH, FlowState, SessionStore, get_session_store
from app.errors import ConcurrentUpdateError, ReferenceDataError, StateStoreUnavailable
from app.logic.campus_data import Branch, CampusCatalog, ClassTimetable, Program, Scholarship, localized
from app.logic.schemas import AwaitingStep, FlowResponse, Option, TranslationResult
from app.utils.glossary import glossary_translate
from app.utils.languages import (
    SOURCE_LANGUAGE,
    get_fallback_message,
    get_technical_error_message,
    normalise_language,
)
from app.utils.timetable_translator import translate_timetable
from app.utils.translator import render_flow_response, translate_response, translate_to_english
from app.utils.validators import extract_semester, format_inr, normalise_code, sanitise_input

logger = logging.getLogger(__name__)
settings = get_settings()

# English source texts; rendered per language by the translation middleware
MESSAGES = {
    "select_program": "Please select your program:",
    "select_program_timetable": "Please select your program to view the class timetable:",
    "select_branch": "Please select your branch:",
    "select_semester": "Please select the semester:",
    "invalid_selection": "Invalid selection. Please try again.",
    "no_programs": "No programs are available at the moment.",
    "no_branches": "No branches are available for {program} at the moment.",
    "fees": "The semester fee for {program} - {branch} is {fee} per semester.",
    "timetable_heading": "📚 Class Timetable for {program} - Semester {semester}",
    "no_timetable": (
        "The timetable for this program and semester has not been published yet. "
        "Please check back later or contact the administration office."
    ),
    "no_scholarships": "No scholarships available at the moment.",
    "scholarship_list": "The following scholarships are available:",
    "scholarship_pick": "Please select a scholarship to learn more about it.",
    "scholarship_info": "Here is information about: {name}",
    "scholarship_amount": "Amount: {amount}",
    "scholarship_ask": "Would you like to know the eligibility criteria or application process?",
    "eligibility": "Eligibility Criteria - {name}:",
    "application": "Application Process - {name}:",
    "anything_else": "Would you like to know anything else?",
    "circulars": "Latest Circulars:",
    "no_circulars": "No circulars available at the moment.",
}

SCHOLARSHIP_LIST_PHRASES = (
    "available",
    "list",
    "what scholarships",
    "which scholarships",
    "show scholarships",
    "all scholarships",
)
ELIGIBILITY_PHRASES = (
    "eligibility", "eligible", "who can apply", "criteria", "qualify",
    "पात्रता", "தகுதி", "అర్హత", "যোগ্যতা",
)
APPLICATION_PHRASES = (
    "application", "how to apply", "process", "procedure",
    "आवेदन", "अर्ज", "விண்ணப்ப", "దరఖాస్తు", "আবেদন",
)

# Fields cleared when one flow hands over to another
_CLEARED_SELECTIONS: dict[str, Any] = {
    "selected_program": None,
    "selected_branch": None,
    "selected_semester": None,
    "selected_scholarship": None,
    "last_scholarship_discussed": None,
}


@dataclass
class FlowTransition:
    """Response for this turn plus the state patch persisted with it (None = no write)."""
    response: FlowResponse | None
    patch: dict[str, Any] | None = None


@dataclass
class TurnResult:
    session_id: str
    language: str
    message: str
    options: list[Option] = field(default_factory=list)
    requires_next_step: bool = False
    current_step: AwaitingStep | None = None
    final_answer: str | None = None
    intent: FlowIntent | None = None
    # None for the static pre-localised messages
    translation: TranslationResult | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _step_patch(intent: FlowIntent, step: AwaitingStep, **selections: Any) -> dict[str, Any]:
    return {"current_intent": intent, "awaiting_step": step, "step_started_at": _now(), **selections}


def _contains_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(p in text for p in phrases)


def _program_options(programs: list[Program]) -> list[Option]:
    return [Option(id=p.code, label=p.display_name, value=p.code) for p in programs]


def _branch_options(branches: list[Branch]) -> list[Option]:
    return [Option(id=b.code, label=b.display_name, value=b.code) for b in branches]


def _semester_options(program: Program) -> list[Option]:
    return [
        Option(id=f"SEM{n}", label=f"Semester {n}", value=str(n))
        for n in range(1, program.duration + 1)
    ]


def _scholarship_options(scholarships: list[Scholarship]) -> list[Option]:
    return [
        Option(id=f"SCH{i}", label=s.key, value=s.key)
        for i, s in enumerate(scholarships, start=1)
    ]


def format_timetable(timetable: ClassTimetable, language: str = SOURCE_LANGUAGE) -> str:
    """Day-by-day listing, one line per class, empty days skipped."""
    lines: list[str] = []
    for day, entries in timetable.days():
        lines.append("")
        lines.append(f"📅 {glossary_translate(day.title(), language)}")
        for entry in entries:
            line = f"• {entry.time} — {entry.subject}"
            if entry.faculty:
                line += f" ({entry.faculty})"
            if entry.venue:
                line += f" [{entry.venue}]"
            lines.append(line)
    return "\n".join(lines)


class FlowController:
    def __init__(self, store: SessionStore, catalog: CampusCatalog):
        self.store = store
        self.catalog = catalog

    # ── Turn entry point ──────────────────────────────────────

    def handle_turn(self, session_id: str, raw_message: str, language: str) -> TurnResult:
        language = normalise_language(language)
        raw = sanitise_input(raw_message)

        try:
            state = self.store.get(session_id)
            english = raw
            if language != SOURCE_LANGUAGE and settings.TRANSLATE_INPUT:
                english = translate_to_english(raw, language)
            category = None
            if settings.USE_AI_CATEGORY_HINT:
                category = classify_intent_ai(english).category
            intent = detect_flow(raw, english, category)
            logger.info(
                f"Session {session_id}: intent={intent.value if intent else None}, "
                f"active={state.current_intent.value if state.current_intent else None}, "
                f"step={state.awaiting_step.value if state.awaiting_step else None}"
            )

            transition = self.decide(state, raw, english, language, intent)
            if transition.patch is not None:
                self.store.merge(session_id, transition.patch, expected_version=state.version)

            if transition.response is None:
                return self._static_turn(session_id, language, get_fallback_message(language))
            rendered, result = render_flow_response(transition.response, language)
        except StateStoreUnavailable as e:
            logger.error(f"Session store unavailable for {session_id}: {e}", exc_info=True)
            return self._static_turn(session_id, language, get_technical_error_message(language))
        except ConcurrentUpdateError as e:
            logger.warning(f"{e}; discarding this turn")
            return self._static_turn(session_id, language, get_technical_error_message(language))
        except Exception as e:
            logger.error(f"Flow controller failed for {session_id}: {e}", exc_info=True)
            return self._static_turn(session_id, language, get_fallback_message(language))

        return TurnResult(
            session_id=session_id,
            language=language,
            message=rendered.message,
            options=rendered.options,
            requires_next_step=rendered.requires_next_step,
            current_step=rendered.current_step,
            final_answer=rendered.final_answer,
            intent=intent,
            translation=result,
        )

    @staticmethod
    def _static_turn(session_id: str, language: str, message: str) -> TurnResult:
        return TurnResult(session_id=session_id, language=language, message=message)

    # ── Transition decision ───────────────────────────────────

    def decide(
        self,
        state: FlowState,
        raw: str,
        english: str,
        language: str,
        intent: FlowIntent | None,
    ) -> FlowTransition:
        if state.is_active and intent is not None and intent != state.current_intent:
            logger.info(f"Topic change {state.current_intent.value} -> {intent.value}")
            transition = self._start_flow(intent, FlowState(), raw, english)
            if transition.patch is not None:
                transition.patch = {**_CLEARED_SELECTIONS, **transition.patch}
            return transition

        if state.is_active and state.awaiting_step is not None:
            return self._continue_flow(state, raw, english, language)

        if intent is None:
            return FlowTransition(response=None)

        return self._start_flow(intent, state, raw, english)

    def _start_flow(self, intent, state, raw, english) -> FlowTransition:
        if intent is FlowIntent.SEMESTER_FEES:
            return self._prompt_program(intent, MESSAGES["select_program"])
        if intent is FlowIntent.EXAM_TIMETABLE:
            return self._prompt_program(intent, MESSAGES["select_program_timetable"])
        if intent is FlowIntent.SCHOLARSHIPS:
            return self._scholarships(state, raw, english)
        return self._circulars()

    def _continue_flow(self, state, raw, english, language) -> FlowTransition:
        intent, step = state.current_intent, state.awaiting_step
        answers = [raw] if english == raw else [raw, english]

        if step is AwaitingStep.PROGRAM and intent in (FlowIntent.SEMESTER_FEES, FlowIntent.EXAM_TIMETABLE):
            return self._select_program(intent, answers)
        if step is AwaitingStep.BRANCH and intent is FlowIntent.SEMESTER_FEES:
            return self._select_branch(state, answers)
        if step is AwaitingStep.SEMESTER and intent is FlowIntent.EXAM_TIMETABLE:
            return self._select_semester(state, answers, language)
        if step is AwaitingStep.SCHOLARSHIP_FOLLOWUP and intent is FlowIntent.SCHOLARSHIPS:
            return self._scholarships(state, raw, english)

        logger.warning(f"No handler for {intent} at step {step}; resetting flow")
        return FlowTransition(response=None, patch=dict(IDLE_PATCH))

    # ── Reference data (failures degrade to "none available") ─

    def _programs(self) -> list[Program]:
        try:
            return self.catalog.list_programs()
        except ReferenceDataError as e:
            logger.error(f"Program lookup failed: {e}")
            return []

    def _program(self, code: str | None) -> Program | None:
        if not code:
            return None
        try:
            return self.catalog.get_program(code)
        except ReferenceDataError as e:
            logger.error(f"Program lookup failed for {code}: {e}")
            return None

    def _branches(self, program_code: str) -> list[Branch]:
        try:
            return self.catalog.list_branches(program_code)
        except ReferenceDataError as e:
            logger.error(f"Branch lookup failed for {program_code}: {e}")
            return []

    # ── Program step (fees and timetable) ─────────────────────

    def _prompt_program(self, intent: FlowIntent, prompt: str, invalid: bool = False) -> FlowTransition:
        programs = self._programs()
        if not programs:
            return FlowTransition(FlowResponse(message=MESSAGES["no_programs"]), dict(IDLE_PATCH))

        message = f"{MESSAGES['invalid_selection']}\n\n{prompt}" if invalid else prompt
        response = FlowResponse(
            message=message,
            options=_program_options(programs),
            requires_next_step=True,
            current_step=AwaitingStep.PROGRAM,
        )
        if invalid:
            return FlowTransition(response)
        patch = _step_patch(
            intent,
            AwaitingStep.PROGRAM,
            selected_program=None,
            selected_branch=None,
            selected_semester=None,
        )
        return FlowTransition(response, patch)

    def _select_program(self, intent: FlowIntent, answers: list[str]) -> FlowTransition:
        programs = {p.code: p for p in self._programs()}
        program = next((programs[c] for c in map(normalise_code, answers) if c in programs), None)

        prompt = (
            MESSAGES["select_program"]
            if intent is FlowIntent.SEMESTER_FEES
            else MESSAGES["select_program_timetable"]
        )
        if program is None:
            if not programs:
                return FlowTransition(FlowResponse(message=MESSAGES["no_programs"]), dict(IDLE_PATCH))
            return self._prompt_program(intent, prompt, invalid=True)

        if intent is FlowIntent.SEMESTER_FEES:
            branches = self._branches(program.code)
            if not branches:
                message = MESSAGES["no_branches"].format(program=program.display_name)
                return FlowTransition(FlowResponse(message=message), dict(IDLE_PATCH))
            response = FlowResponse(
                message=MESSAGES["select_branch"],
                options=_branch_options(branches),
                requires_next_step=True,
                current_step=AwaitingStep.BRANCH,
            )
            return FlowTransition(response, _step_patch(intent, AwaitingStep.BRANCH, selected_program=program.code))

        response = FlowResponse(
            message=MESSAGES["select_semester"],
            options=_semester_options(program),
            requires_next_step=True,
            current_step=AwaitingStep.SEMESTER,
        )
        return FlowTransition(response, _step_patch(intent, AwaitingStep.SEMESTER, selected_program=program.code))

    # ── Fees: branch step ─────────────────────────────────────

    @staticmethod
    def _match_branch(branches: list[Branch], answers: list[str]) -> Branch | None:
        by_code = {b.code: b for b in branches}
        for answer in answers:
            code = normalise_code(answer)
            if code in by_code:
                return by_code[code]
        for answer in answers:
            needle = answer.strip().lower()
            if not needle:
                continue
            for branch in branches:
                if branch.code.lower() == needle:
                    return branch
                if any(needle in name.lower() for name in branch.name.values()):
                    return branch
        return None

    def _select_branch(self, state: FlowState, answers: list[str]) -> FlowTransition:
        program_code = state.selected_program or ""
        branches = self._branches(program_code)
        if not branches:
            message = MESSAGES["no_branches"].format(program=program_code)
            return FlowTransition(FlowResponse(message=message), dict(IDLE_PATCH))

        branch = self._match_branch(branches, answers)
        if branch is None:
            response = FlowResponse(
                message=f"{MESSAGES['invalid_selection']}\n\n{MESSAGES['select_branch']}",
                options=_branch_options(branches),
                requires_next_step=True,
                current_step=AwaitingStep.BRANCH,
            )
            return FlowTransition(response)

        program = self._program(program_code)
        message = MESSAGES["fees"].format(
            program=program.display_name if program else program_code,
            branch=branch.display_name,
            fee=format_inr(branch.semester_fee),
        )
        logger.info(f"Fees answered: {program_code}/{branch.code} = {branch.semester_fee}")
        return FlowTransition(FlowResponse(message=message, final_answer=message), dict(IDLE_PATCH))

    # ── Timetable: semester step ──────────────────────────────

    def _select_semester(self, state: FlowState, answers: list[str], language: str) -> FlowTransition:
        program = self._program(state.selected_program)
        if program is None:
            return FlowTransition(FlowResponse(message=MESSAGES["no_programs"]), dict(IDLE_PATCH))

        semester = next(
            (n for n in map(extract_semester, answers) if n is not None and 1 <= n <= program.duration),
            None,
        )
        if semester is None:
            response = FlowResponse(
                message=f"{MESSAGES['invalid_selection']}\n\n{MESSAGES['select_semester']}",
                options=_semester_options(program),
                requires_next_step=True,
                current_step=AwaitingStep.SEMESTER,
            )
            return FlowTransition(response)

        try:
            timetable = self.catalog.get_class_timetable(program.code, semester)
        except ReferenceDataError as e:
            logger.error(f"Timetable lookup failed for {program.code} sem {semester}: {e}")
            timetable = None

        if timetable is None or not timetable.days():
            message = MESSAGES["no_timetable"]
            return FlowTransition(FlowResponse(message=message, final_answer=message), dict(IDLE_PATCH))

        heading = MESSAGES["timetable_heading"].format(program=program.display_name, semester=semester)
        if language == SOURCE_LANGUAGE:
            message = heading + "\n" + format_timetable(timetable)
            return FlowTransition(FlowResponse(message=message, final_answer=message), dict(IDLE_PATCH))

        heading_result = translate_response(heading, language)
        message = heading_result.translated + "\n" + format_timetable(translate_timetable(timetable, language), language)
        rendering = TranslationResult(
            success=heading_result.success,
            translated=message,
            method=heading_result.method,
            language=language,
        )
        response = FlowResponse(message=message, final_answer=message, rendering=rendering)
        return FlowTransition(response, dict(IDLE_PATCH))

    # ── Scholarships ──────────────────────────────────────────

    @staticmethod
    def _find_scholarship(scholarships: list[Scholarship], text: str) -> Scholarship | None:
        best, best_len = None, 0
        for scholarship in scholarships:
            for term in scholarship.search_terms():
                if term in text and len(term) > best_len:
                    best, best_len = scholarship, len(term)
        return best

    def _scholarships(self, state: FlowState, raw: str, english: str) -> FlowTransition:
        try:
            scholarships = self.catalog.list_scholarships()
        except ReferenceDataError as e:
            logger.error(f"Scholarship lookup failed: {e}")
            scholarships = []
        if not scholarships:
            return FlowTransition(FlowResponse(message=MESSAGES["no_scholarships"]), dict(IDLE_PATCH))

        text = raw.lower() if english == raw else f"{raw} {english}".lower()
        wants_list = text.strip() in ("scholarships", "scholarship") or _contains_any(
            text, SCHOLARSHIP_LIST_PHRASES
        )
        wants_eligibility = _contains_any(text, ELIGIBILITY_PHRASES)
        wants_application = _contains_any(text, APPLICATION_PHRASES)

        if wants_list and not state.last_scholarship_discussed:
            return self._scholarship_list(scholarships)

        scholarship = self._find_scholarship(scholarships, text)
        if scholarship is None and state.last_scholarship_discussed:
            scholarship = next(
                (s for s in scholarships if s.key == state.last_scholarship_discussed), None
            )
        if scholarship is None:
            return self._scholarship_list(scholarships)

        name = scholarship.key
        keep_open = _step_patch(
            FlowIntent.SCHOLARSHIPS,
            AwaitingStep.SCHOLARSHIP_FOLLOWUP,
            selected_scholarship=name,
            last_scholarship_discussed=name,
        )

        if wants_eligibility:
            message = (
                f"{MESSAGES['eligibility'].format(name=name)}\n\n"
                f"{localized(scholarship.eligibility)}\n\n{MESSAGES['anything_else']}"
            )
            return FlowTransition(self._followup(message), keep_open)

        if wants_application:
            message = f"{MESSAGES['application'].format(name=name)}\n\n{localized(scholarship.application_process)}"
            return FlowTransition(FlowResponse(message=message, final_answer=message), dict(IDLE_PATCH))

        parts = [MESSAGES["scholarship_info"].format(name=name), localized(scholarship.description)]
        if scholarship.amount:
            parts.append(MESSAGES["scholarship_amount"].format(amount=scholarship.amount))
        parts.append(MESSAGES["scholarship_ask"])
        return FlowTransition(self._followup("\n\n".join(parts)), keep_open)

    @staticmethod
    def _followup(message: str, options: list[Option] | None = None) -> FlowResponse:
        return FlowResponse(
            message=message,
            options=options or [],
            requires_next_step=True,
            current_step=AwaitingStep.SCHOLARSHIP_FOLLOWUP,
        )

    def _scholarship_list(self, scholarships: list[Scholarship]) -> FlowTransition:
        items = "\n\n".join(f"• {s.key}\n  {localized(s.description)}" for s in scholarships)
        message = f"{MESSAGES['scholarship_list']}\n\n{items}\n\n{MESSAGES['scholarship_pick']}"
        patch = _step_patch(
            FlowIntent.SCHOLARSHIPS,
            AwaitingStep.SCHOLARSHIP_FOLLOWUP,
            selected_scholarship=None,
            last_scholarship_discussed=None,
        )
        return FlowTransition(self._followup(message, _scholarship_options(scholarships)), patch)

    # ── Circulars ─────────────────────────────────────────────

    def _circulars(self) -> FlowTransition:
        try:
            circulars = self.catalog.list_circulars(limit=settings.CIRCULARS_LIMIT)
        except ReferenceDataError as e:
            logger.error(f"Circular lookup failed: {e}")
            circulars = []
        if not circulars:
            return FlowTransition(FlowResponse(message=MESSAGES["no_circulars"]), dict(IDLE_PATCH))

        items = "\n\n".join(
            f"{i}. {localized(c.title)}\n   {localized(c.content)}" for i, c in enumerate(circulars, start=1)
        )
        message = f"{MESSAGES['circulars']}\n\n{items}"
        return FlowTransition(FlowResponse(message=message, final_answer=message), dict(IDLE_PATCH))


@lru_cache
def get_flow_controller() -> FlowController:
    return FlowController(get_session_store(), CampusCatalog())
