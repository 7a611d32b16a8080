"""
Glossary translator – deterministic, offline term substitution.

Used as the second tier of the translation chain when the primary (AI)
translator is unavailable.  It is a bag-of-terms substitution, not a
grammatical translator:

  * matching is case-insensitive and whole-word / whole-phrase only
  * longer terms win over their substrings ("C Programming Lab" before
    "C Programming" before "Lab")
  * the text is scanned once, so substituted output is never re-matched
  * numbers, punctuation, emoji, line breaks and bullet markers are untouched
"""

from __future__ import annotations

import re
from functools import lru_cache

from app.utils.languages import SOURCE_LANGUAGE

# English term -> {language: translation}
GLOSSARY: dict[str, dict[str, str]] = {
    # ── Days of week ──────────────────────────────────────────
    "Monday": {"hi": "सोमवार", "ta": "திங்கட்கிழமை", "te": "సోమవారం", "bn": "সোমবার", "mr": "सोमवार"},
    "Tuesday": {"hi": "मंगलवार", "ta": "செவ்வாய்க்கிழமை", "te": "మంగళవారం", "bn": "মঙ্গলবার", "mr": "मंगळवार"},
    "Wednesday": {"hi": "बुधवार", "ta": "புதன்கிழமை", "te": "బుధవారం", "bn": "বুধবার", "mr": "बुधवार"},
    "Thursday": {"hi": "गुरुवार", "ta": "வியாழக்கிழமை", "te": "గురువారం", "bn": "বৃহস্পতিবার", "mr": "गुरुवार"},
    "Friday": {"hi": "शुक्रवार", "ta": "வெள்ளிக்கிழமை", "te": "శుక్రవారం", "bn": "শুক্রবার", "mr": "शुक्रवार"},
    "Saturday": {"hi": "शनिवार", "ta": "சனிக்கிழமை", "te": "శనివారం", "bn": "শনিবার", "mr": "शनिवार"},
    "Sunday": {"hi": "रविवार", "ta": "ஞாயிற்றுக்கிழமை", "te": "ఆదివారం", "bn": "রবিবার", "mr": "रविवार"},

    # ── Subjects ──────────────────────────────────────────────
    "Mathematics-I": {"hi": "गणित-I", "ta": "கணிதம்-I", "te": "గణితం-I", "bn": "গণিত-I", "mr": "गणित-I"},
    "Mathematics-II": {"hi": "गणित-II", "ta": "கணிதம்-II", "te": "గణితం-II", "bn": "গণিত-II", "mr": "गणित-II"},
    "Mathematics-III": {"hi": "गणित-III", "ta": "கணிதம்-III", "te": "గణితం-III", "bn": "গণিত-III", "mr": "गणित-III"},
    "Mathematics": {"hi": "गणित", "ta": "கணிதம்", "te": "గణితం", "bn": "গণিত", "mr": "गणित"},
    "Basic Mechanical Engg": {
        "hi": "बेसिक मैकेनिकल इंजीनियरिंग",
        "ta": "அடிப்படை இயந்திர பொறியியல்",
        "te": "ప్రాథమిక యాంత్రిక ఇంజనీరింగ్",
        "bn": "মৌলিক যান্ত্রিক প্রকৌশল",
        "mr": "मूलभूत यांत्रिक अभियांत्रिकी",
    },
    "Basic Electrical Engg": {
        "hi": "बेसिक विद्युत इंजीनियरिंग",
        "ta": "அடிப்படை மின் பொறியியல்",
        "te": "ప్రాథమిక ఎలక్ట్రికల్ ఇంజనీరింగ్",
        "bn": "মৌলিক বৈদ্যুতিক প্রকৌশল",
        "mr": "मूलभूत विद्युत अभियांत्रिकी",
    },
    "Engineering Graphics": {
        "hi": "इंजीनियरिंग ड्राइंग",
        "ta": "பொறியியல் வரைகலை",
        "te": "ఇంజనీరింగ్ గ్రాఫిక్స్",
        "bn": "প্রকৌশল গ্রাফিক্স",
        "mr": "अभियांत्रिकी रेखाचित्र",
    },
    "C Programming": {"hi": "सी प्रोग्रामिंग", "ta": "சி நிரலாக்கம்", "te": "సి ప్రోగ్రామింగ్", "bn": "সি প্রোগ্রামিং", "mr": "सी प्रोग्रामिंग"},
    "Data Structures": {"hi": "डेटा संरचनाएं", "ta": "தரவு கட்டமைப்புகள்", "te": "డేటా స్ట్రక్చర్‌లు", "bn": "ডেটা স্ট্রাকচার", "mr": "डेटा संरचना"},
    "Digital Logic Design": {
        "hi": "डिजिटल लॉजिक डिजाइन",
        "ta": "டிஜிட்டல் தர்க்க வடிவமைப்பு",
        "te": "డిజిటల్ లాజిక్ డిజైన్",
        "bn": "ডিজিটাল লজিক ডিজাইন",
        "mr": "डिजिटल लॉजिक डिझाइन",
    },
    "Economics": {"hi": "अर्थशास्त्र", "ta": "பொருளாதாரம்", "te": "ఆర్థికశాస్త్రం", "bn": "অর্থনীতি", "mr": "अर्थशास्त्र"},
    "Physics": {"hi": "भौतिकी", "ta": "இயற்பியல்", "te": "భౌతికశాస్త్రం", "bn": "পদার্থবিজ্ঞান", "mr": "भौतिकशास्त्र"},
    "Chemistry": {"hi": "रसायन विज्ञान", "ta": "வேதியியல்", "te": "రసాయన శాస్త్రం", "bn": "রসায়ন বিজ্ঞান", "mr": "रसायनशास्त्र"},
    "Chemistry-I": {"hi": "रसायन विज्ञान-I", "ta": "வேதியியல்-I", "te": "రసాయన శాస్త్రం-I", "bn": "রসায়ন বিজ্ঞান-I", "mr": "रसायनशास्त्र-I"},
    "Chemistry-II": {"hi": "रसायन विज्ञान-II", "ta": "வேதியியல்-II", "te": "రసాయన శాస్త్రం-II", "bn": "রসায়ন বিজ্ঞান-II", "mr": "रसायनशास्त्र-II"},
    "Organic Chemistry": {"hi": "कार्बनिक रसायन विज्ञान", "ta": "கரிம வேதியியல்", "te": "సేంద్రీయ రసాయన శాస్త్రం", "bn": "জৈব রসায়ন", "mr": "सेंद्रिय रसायनशास्त्र"},
    "Inorganic Chemistry": {"hi": "अकार्बनिक रसायन विज्ञान", "ta": "கனிம வேதியியல்", "te": "అకర్బన రసాయన శాస్త్రం", "bn": "অজৈব রসায়ন", "mr": "असेंद्रिय रसायनशास्त्र"},
    "Physical Chemistry": {"hi": "भौतिक रसायन विज्ञान", "ta": "இயற்பிய வேதியியல்", "te": "భౌతిక రసాయన శాస్త్రం", "bn": "ভৌত রসায়ন", "mr": "भौतिक रसायनशास्त्र"},
    "English": {"hi": "अंग्रेजी", "ta": "ஆங்கிலம்", "te": "ఆంగ్లం", "bn": "ইংরেজি", "mr": "इंग्रजी"},
    "Workshop Practice": {"hi": "कार्यशाला अभ्यास", "ta": "பட்டறை பயிற்சி", "te": "వర్క్‌షాప్ ప్రాక్టీస్", "bn": "ওয়ার্কশপ অনুশীলন", "mr": "कार्यशाळा सराव"},
    "Workshop": {"hi": "कार्यशाला", "ta": "பட்டறை", "te": "వర్క్‌షాప్", "bn": "ওয়ার্কশপ", "mr": "कार्यशाळा"},

    # ── Labs & venue types ────────────────────────────────────
    "C Programming Lab": {
        "hi": "सी प्रोग्रामिंग प्रयोगशाला",
        "ta": "சி நிரலாக்க ஆய்வகம்",
        "te": "సి ప్రోగ్రామింగ్ ల్యాబ్",
        "bn": "সি প্রোগ্রামিং ল্যাব",
        "mr": "सी प्रोग्रामिंग प्रयोगशाळा",
    },
    "Chemistry Lab": {"hi": "रसायन प्रयोगशाला", "ta": "வேதியியல் ஆய்வகம்", "te": "రసాయన ల్యాబ్", "bn": "রসায়ন ল্যাব", "mr": "रसायन प्रयोगशाळा"},
    "Physics Lab": {"hi": "भौतिकी प्रयोगशाला", "ta": "இயற்பியல் ஆய்வகம்", "te": "ఫిజిక్స్ ల్యాబ్", "bn": "পদার্থবিজ্ঞান ল্যাব", "mr": "भौतिकशास्त्र प्रयोगशाळा"},
    "Electrical Lab": {"hi": "विद्युत प्रयोगशाला", "ta": "மின் ஆய்வகம்", "te": "ఎలక్ట్రికల్ ల్యాబ్", "bn": "বৈদ্যুতিক ল্যাব", "mr": "विद्युत प्रयोगशाळा"},
    "DS Lab": {"hi": "डेटा संरचना प्रयोगशाला", "ta": "தரவு கட்டமைப்பு ஆய்வகம்", "te": "డీఎస్ ల్యాబ్", "bn": "ডিএস ল্যাব", "mr": "डेटा संरचना प्रयोगशाळा"},
    "Lab": {"hi": "प्रयोगशाला", "ta": "ஆய்வகம்", "te": "ల్యాబ్", "bn": "ল্যাব", "mr": "प्रयोगशाळा"},
    "Library": {"hi": "पुस्तकालय", "ta": "நூலகம்", "te": "గ్రంథాలయం", "bn": "গ্রন্থাগার", "mr": "ग्रंथालय"},
    "Drawing Hall": {"hi": "ड्राइंग हॉल", "ta": "வரைதல் அரங்கம்", "te": "డ్రాయింగ్ హాల్", "bn": "ড্রয়িং হল", "mr": "रेखाचित्र हॉल"},
    "Seminar Hall": {"hi": "सेमिनार हॉल", "ta": "கருத்தரங்க அரங்கம்", "te": "సెమినార్ హాల్", "bn": "সেমিনার হল", "mr": "सेमिनार हॉल"},
    "Lecture Hall": {"hi": "व्याख्यान कक्ष", "ta": "விரிவுரை அரங்கம்", "te": "లెక్చర్ హాల్", "bn": "লেকচার হল", "mr": "व्याख्यान कक्ष"},
    "Room": {"hi": "कक्ष", "ta": "அறை", "te": "గది", "bn": "কক্ষ", "mr": "खोली"},

    # ── Academic headings ─────────────────────────────────────
    "Class Timetable": {"hi": "कक्षा समय सारणी", "ta": "வகுப்பு நேர அட்டவணை", "te": "తరగతి టైమ్‌టేబుల్", "bn": "ক্লাস টাইমটেবিল", "mr": "वर्ग वेळापत्रक"},
    "Exam Timetable": {"hi": "परीक्षा समय सारणी", "ta": "தேர்வு நேர அட்டவணை", "te": "పరీక్ష టైమ్‌టేబుల్", "bn": "পরীক্ষার সময়সূচী", "mr": "परीक्षा वेळापत्रक"},
    "Semester Fees": {"hi": "सेमेस्टर फीस", "ta": "செமஸ்டர் கட்டணம்", "te": "సెమిస్టర్ ఫీజు", "bn": "সেমিস্টার ফি", "mr": "सेमिस्टर फी"},
    "semester fee": {"hi": "सेमेस्टर फीस", "ta": "செமஸ்டர் கட்டணம்", "te": "సెమిస్టర్ ఫీజు", "bn": "সেমিস্টার ফি", "mr": "सेमिस्टर फी"},
    "per semester": {"hi": "प्रति सेमेस्टर", "ta": "ஒரு செமஸ்டருக்கு", "te": "ప్రతి సెమిస్టర్‌కు", "bn": "প্রতি সেমিস্টার", "mr": "प्रति सेमिस्टर"},
    "Available Scholarships": {"hi": "उपलब्ध छात्रवृत्तियाँ", "ta": "கிடைக்கும் உதவித்தொகைகள்", "te": "అందుబాటులో ఉన్న స్కాలర్‌షిప్‌లు", "bn": "উপলব্ধ বৃত্তিসমূহ", "mr": "उपलब्ध शिष्यवृत्ती"},
    "Latest Circulars": {"hi": "नवीनतम परिपत्र", "ta": "சமீபத்திய சுற்றறிக்கைகள்", "te": "తాజా సర్క్యులర్లు", "bn": "সর্বশেষ সার্কুলার", "mr": "नवीनतम परिपत्रके"},
    "Eligibility Criteria": {"hi": "पात्रता मानदंड", "ta": "தகுதி விதிகள்", "te": "అర్హత ప్రమాణాలు", "bn": "যোগ্যতার মানদণ্ড", "mr": "पात्रता निकष"},
    "Application Process": {"hi": "आवेदन प्रक्रिया", "ta": "விண்ணப்ப செயல்முறை", "te": "దరఖాస్తు ప్రక్రియ", "bn": "আবেদন প্রক্রিয়া", "mr": "अर्ज प्रक्रिया"},
    "Scholarships": {"hi": "छात्रवृत्तियाँ", "ta": "உதவித்தொகைகள்", "te": "స్కాలర్‌షిప్‌లు", "bn": "বৃত্তিসমূহ", "mr": "शिष्यवृत्त्या"},
    "Scholarship": {"hi": "छात्रवृत्ति", "ta": "உதவித்தொகை", "te": "స్కాలర్‌షిప్", "bn": "বৃত্তি", "mr": "शिष्यवृत्ती"},
    "Circulars": {"hi": "परिपत्र", "ta": "சுற்றறிக்கைகள்", "te": "సర్క్యులర్లు", "bn": "সার্কুলার", "mr": "परिपत्रके"},

    # ── Common labels ─────────────────────────────────────────
    "Please select": {"hi": "कृपया चुनें", "ta": "தயவுசெய்து தேர்ந்தெடுக்கவும்", "te": "దయచేసి ఎంచుకోండి", "bn": "অনুগ্রহ করে নির্বাচন করুন", "mr": "कृपया निवडा"},
    "Invalid selection": {"hi": "अमान्य चयन", "ta": "தவறான தேர்வு", "te": "చెల్లని ఎంపిక", "bn": "অবৈধ নির্বাচন", "mr": "अवैध निवड"},
    "Please try again": {"hi": "कृपया पुनः प्रयास करें", "ta": "மீண்டும் முயற்சிக்கவும்", "te": "దయచేసి మళ్లీ ప్రయత్నించండి", "bn": "অনুগ্রহ করে আবার চেষ্টা করুন", "mr": "कृपया पुन्हा प्रयत्न करा"},
    "Time": {"hi": "समय", "ta": "நேரம்", "te": "సమయం", "bn": "সময়", "mr": "वेळ"},
    "Subject": {"hi": "विषय", "ta": "பாடம்", "te": "విషయం", "bn": "বিষয়", "mr": "विषय"},
    "Faculty": {"hi": "संकाय", "ta": "ஆசிரியர்", "te": "అధ్యాపకులు", "bn": "শিক্ষক", "mr": "प्राध्यापक"},
    "Venue": {"hi": "स्थान", "ta": "இடம்", "te": "వేదిక", "bn": "স্থান", "mr": "स्थळ"},
    "Semester": {"hi": "सेमेस्टर", "ta": "செமஸ்டர்", "te": "సెమిస్టర్", "bn": "সেমিস্টার", "mr": "सेमिस्टर"},
    "Program": {"hi": "कार्यक्रम", "ta": "திட்டம்", "te": "ప్రోగ్రామ్", "bn": "প্রোগ্রাম", "mr": "कार्यक्रम"},
    "Branch": {"hi": "शाखा", "ta": "கிளை", "te": "శాఖ", "bn": "শাখা", "mr": "शाखा"},
    "Fee": {"hi": "शुल्क", "ta": "கட்டணம்", "te": "ఫీజు", "bn": "ফি", "mr": "शुल्क"},
    "Fees": {"hi": "शुल्क", "ta": "கட்டணங்கள்", "te": "ఫీజులు", "bn": "ফি", "mr": "शुल्क"},
    "Timetable": {"hi": "समय सारणी", "ta": "நேர அட்டவணை", "te": "టైమ్‌టేబుల్", "bn": "সময়সূচী", "mr": "वेळापत्रक"},
    "Eligibility": {"hi": "पात्रता", "ta": "தகுதி", "te": "అర్హత", "bn": "যোগ্যতা", "mr": "पात्रता"},
}


@lru_cache(maxsize=None)
def _compiled_glossary(target_language: str) -> tuple[re.Pattern[str] | None, dict[str, str]]:
    """
    Build one alternation regex per language, longest term first, plus a
    lower-cased lookup table for the replacement callback.
    """
    lookup: dict[str, str] = {}
    for term, translations in GLOSSARY.items():
        translated = translations.get(target_language)
        if translated and translated != term:
            lookup.setdefault(term.lower(), translated)

    if not lookup:
        return None, lookup

    terms = sorted(lookup, key=len, reverse=True)
    alternation = "|".join(re.escape(t) for t in terms)
    pattern = re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)
    return pattern, lookup


def glossary_translate(text: str, target_language: str) -> str:
    """
    Substitute every known glossary term in *text* with its equivalent in
    *target_language*.  Unknown words are left as they are.
    """
    if target_language == SOURCE_LANGUAGE:
        return text
    if not text or not text.strip():
        return text

    pattern, lookup = _compiled_glossary(target_language)
    if pattern is None:
        return text

    return pattern.sub(lambda m: lookup[m.group(0).lower()], text)


def expects_translation(text: str) -> bool:
    """Text with no letters (semester numbers, amounts) has nothing to translate."""
    return any(ch.isalpha() for ch in text)


def is_valid_translation(original: str, translated: str | None, target_language: str) -> bool:
    """
    Structural sanity check applied to every translation tier.

    Rejects empty output, output identical to the input (when a real
    translation was expected) and output whose length is outside
    0.3x – 3x of the original.
    """
    if not translated or not translated.strip():
        return False
    if target_language != SOURCE_LANGUAGE and translated == original:
        return not expects_translation(original)
    if len(translated) < len(original) * 0.3:
        return False
    if len(translated) > len(original) * 3:
        return False
    return True
