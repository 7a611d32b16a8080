"""
Multilingual flow classifier.

Decides which guided flow (fees, timetable, circulars, scholarships) a message
belongs to.  Matching runs on the raw user text in its original language, so
it works even when translation to English failed or was skipped.

Rules:
  * flows are tried in INTENT_PRIORITY order; the first keyword hit wins
  * within a flow every language's keyword list is checked
  * no scoring – a message mentioning two flows always resolves to the
    higher-priority one
  * if nothing matches, a simpler English pattern set is tried on the
    translated text (same priority order), optionally honouring an AI
    category hint

Everything here is pure: no I/O, no state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FlowIntent(str, Enum):
    SEMESTER_FEES = "SEMESTER_FEES"
    EXAM_TIMETABLE = "EXAM_TIMETABLE"  # serves the weekly class timetable
    SCHOLARSHIPS = "SCHOLARSHIPS"
    CIRCULARS = "CIRCULARS"


# Fees first ("fee" shows up inside other topics), scholarships last (most
# generic keywords).
INTENT_PRIORITY: tuple[FlowIntent, ...] = (
    FlowIntent.SEMESTER_FEES,
    FlowIntent.EXAM_TIMETABLE,
    FlowIntent.CIRCULARS,
    FlowIntent.SCHOLARSHIPS,
)

# ── Keyword table: flow -> language -> keywords ───────────────
FLOW_KEYWORDS: dict[FlowIntent, dict[str, list[str]]] = {
    FlowIntent.SEMESTER_FEES: {
        "en": ["semester fee", "tuition", "course fee", "program fee", "fee", "how much", "cost", "fees"],
        "hi": ["सेमेस्टर फीस", "शुल्क", "फीस", "कितना", "ट्यूशन", "फीस क्या है", "कितनी फीस", "फीस कितनी"],
        "ta": ["கட்டணம்", "செமஸ்டர் கட்டணம்", "பணம்", "எவ்வளவு"],
        "te": ["ఫీజు", "సెమిస్టర్ ఫీజు", "ఎంత", "ఖర్చు"],
        "bn": ["ফি", "সেমিস্টার ফি", "কত", "খরচ"],
        "mr": ["फी", "सेमिस्टर फी", "किती", "शुल्क"],
    },
    FlowIntent.EXAM_TIMETABLE: {
        "en": ["exam timetable", "exam schedule", "timetable", "schedule", "exam date", "when are exams", "exam"],
        "hi": ["परीक्षा", "समय सारणी", "टाइमटेबल", "परीक्षा कब", "एग्जाम", "परीक्षा की तारीख"],
        "ta": ["தேர்வு", "நேர அட்டவணை", "தேர்வு அட்டவணை", "எப்போது"],
        "te": ["పరీక్ష", "టైమ్‌టేబుల్", "షెడ్యూల్", "ఎప్పుడు"],
        "bn": ["পরীক্ষা", "সময়সূচী", "টাইমটেবিল", "কবে"],
        "mr": ["परीक्षा", "वेळापत्रक", "टाइमटेबल", "कधी"],
    },
    FlowIntent.CIRCULARS: {
        "en": ["circular", "notice", "announcement", "notification", "latest circular"],
        "hi": ["परिपत्र", "नोटिस", "घोषणा", "सूचना", "सर्कुलर"],
        "ta": ["சுற்றறிக்கை", "அறிவிப்பு", "நோட்டீஸ்"],
        "te": ["సర్కులర్", "సర్క్యులర్", "నోటీసు", "ప్రకటన"],
        "bn": ["সার্কুলার", "নোটিশ", "ঘোষণা"],
        "mr": ["परिपत्रक", "नोटीस", "घोषणा"],
    },
    FlowIntent.SCHOLARSHIPS: {
        "en": [
            "scholarship",
            "available scholarship",
            "list scholarship",
            "financial aid",
            "merit-cum-means",
            "post-matric",
            "post matric",
            "minority scholarship",
            "sc/st scholarship",
        ],
        "hi": ["छात्रवृत्ति", "स्कॉलरशिप", "वित्तीय सहायता", "मेरिट", "पोस्ट मैट्रिक"],
        "ta": ["உதவித்தொகை", "ஸ்காலர்ஷிப்", "நிதி உதவி"],
        "te": ["స్కాలర్‌షిప్", "ఉపకార వేతనం", "ఆర్థిక సహాయం"],
        "bn": ["বৃত্তি", "স্কলারশিপ", "আর্থিক সাহায্য"],
        "mr": ["शिष्यवृत्ती", "स्कॉलरशिप", "आर्थिक मदत"],
    },
}


@dataclass(frozen=True)
class KeywordPattern:
    """`keyword` must occur; optionally together with one of `requires_any`
    and without any of `excludes`."""
    keyword: str
    requires_any: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if self.keyword not in text:
            return False
        if self.requires_any and not any(r in text for r in self.requires_any):
            return False
        return not any(x in text for x in self.excludes)


# ── Fallback English patterns (applied to translated text) ────
ENGLISH_PATTERNS: dict[FlowIntent, tuple[KeywordPattern, ...]] = {
    FlowIntent.SEMESTER_FEES: (
        KeywordPattern("semester fee"),
        KeywordPattern("tuition"),
        KeywordPattern("course fee"),
        KeywordPattern("program fee"),
        KeywordPattern("fee", excludes=("scholarship",)),
        KeywordPattern("how much", requires_any=("fee", "cost")),
    ),
    FlowIntent.EXAM_TIMETABLE: (
        KeywordPattern("exam timetable"),
        KeywordPattern("exam schedule"),
        KeywordPattern("timetable"),
        KeywordPattern("time table"),
        KeywordPattern("schedule"),
        KeywordPattern("exam date"),
        KeywordPattern("when are exams"),
        KeywordPattern("show", requires_any=("exam",)),
    ),
    FlowIntent.CIRCULARS: (
        KeywordPattern("circular"),
        KeywordPattern("notice"),
        KeywordPattern("announcement"),
        KeywordPattern("notification"),
    ),
    FlowIntent.SCHOLARSHIPS: (
        KeywordPattern("scholarship"),
        KeywordPattern("financial aid"),
        KeywordPattern("merit-cum-means"),
        KeywordPattern("post-matric"),
        KeywordPattern("post matric"),
        KeywordPattern("minority scholarship"),
        KeywordPattern("sc/st scholarship"),
    ),
}

# AI classifier category -> flow
CATEGORY_TO_FLOW: dict[str, FlowIntent] = {
    "fees": FlowIntent.SEMESTER_FEES,
    "timetable": FlowIntent.EXAM_TIMETABLE,
    "circulars": FlowIntent.CIRCULARS,
    "scholarships": FlowIntent.SCHOLARSHIPS,
}


@dataclass(frozen=True)
class IntentResult:
    intent: FlowIntent | None
    matched_keyword: str | None = None
    language: str | None = None
    reason: str = ""


def classify(text: str) -> IntentResult:
    """Match *text* against the multilingual keyword table."""
    text_lower = (text or "").lower().strip()
    if not text_lower:
        return IntentResult(intent=None, reason="empty message")

    for flow in INTENT_PRIORITY:
        for language, keywords in FLOW_KEYWORDS[flow].items():
            for keyword in keywords:
                if keyword.lower() in text_lower:
                    return IntentResult(
                        intent=flow,
                        matched_keyword=keyword,
                        language=language,
                        reason=f"keyword '{keyword}' ({language})",
                    )
    return IntentResult(intent=None, reason="no keyword matched")


def classify_english_patterns(text: str, category: str | None = None) -> IntentResult:
    """Fallback stage: simpler English patterns plus an optional category hint."""
    text_lower = (text or "").lower().strip()
    hinted = CATEGORY_TO_FLOW.get((category or "").lower())

    for flow in INTENT_PRIORITY:
        if hinted is flow:
            return IntentResult(intent=flow, reason=f"category hint '{category}'")
        for pattern in ENGLISH_PATTERNS[flow]:
            if text_lower and pattern.matches(text_lower):
                return IntentResult(
                    intent=flow,
                    matched_keyword=pattern.keyword,
                    language="en",
                    reason=f"english pattern '{pattern.keyword}'",
                )
    return IntentResult(intent=None, reason="no pattern matched")


def detect_flow(
    raw_text: str,
    translated_text: str | None = None,
    category: str | None = None,
) -> FlowIntent | None:
    """
    Return the flow for a message, or None.

    *raw_text* is the user's message as typed; *translated_text* its English
    translation when one is available; *category* an optional AI category hint.
    """
    result = classify(raw_text)
    if result.intent is not None:
        return result.intent

    fallback_text = translated_text if translated_text is not None else raw_text
    if translated_text is not None and translated_text != raw_text:
        translated = classify(translated_text)
        if translated.intent is not None:
            return translated.intent

    return classify_english_patterns(fallback_text, category).intent
