"""
Supported languages and the static, pre-translated system messages.

Flow messages are produced in English and rendered by the translation
middleware.  The few messages below are used when the normal pipeline cannot
run (no intent, store outage, unexpected failure), so they are kept fully
localised and never depend on a translator.
"""

from __future__ import annotations

SOURCE_LANGUAGE = "en"
DEFAULT_LANGUAGE = "en"

SUPPORTED_LANGUAGES: dict[str, str] = {
    "en": "English",
    "hi": "हिन्दी",
    "ta": "தமிழ்",
    "te": "తెలుగు",
    "bn": "বাংলা",
    "mr": "मराठी",
}

# Names used inside translator prompts
LANGUAGE_PROMPT_NAMES: dict[str, str] = {
    "en": "English",
    "hi": "Hindi (Devanagari script)",
    "ta": "Tamil",
    "te": "Telugu",
    "bn": "Bengali",
    "mr": "Marathi (Devanagari script)",
}

_STATIC_MESSAGES: dict[str, dict[str, str]] = {
    "fallback": {
        "en": "I couldn't understand your request. Please try asking about fees, timetables, scholarships, or circulars.",
        "hi": "मैं आपके अनुरोध को समझ नहीं सका। कृपया शुल्क, समय सारणी, छात्रवृत्ति या परिपत्र के बारे में पूछने का प्रयास करें।",
        "ta": "உங்கள் கோரிக்கையை என்னால் புரிந்து கொள்ள முடியவில்லை. கட்டணங்கள், நேர அட்டவணைகள், உதவித்தொகைகள் அல்லது சுற்றறிக்கைகள் பற்றி கேட்க முயற்சிக்கவும்.",
        "te": "మీ అభ్యర్థనను నేను అర్థం చేసుకోలేకపోయాను. దయచేసి ఫీజులు, టైమ్‌టేబుల్స్, స్కాలర్‌షిప్‌లు లేదా సర్కులర్ల గురించి అడగడానికి ప్రయత్నించండి.",
        "bn": "আমি আপনার অনুরোধ বুঝতে পারিনি। অনুগ্রহ করে ফি, সময়সূচী, বৃত্তি বা সার্কুলার সম্পর্কে জিজ্ঞাসা করার চেষ্টা করুন।",
        "mr": "मला तुमची विनंती समजू शकली नाही. कृपया फी, वेळापत्रक, शिष्यवृत्ती किंवा परिपत्रकांबद्दल विचारण्याचा प्रयत्न करा.",
    },
    "technical_error": {
        "en": "Sorry, I'm having technical difficulties. Please try again or contact support.",
        "hi": "माफ़ी चाहता हूँ, मुझे तकनीकी कठिनाई हो रही है। कृपया पुनः प्रयास करें या समर्थन से संपर्क करें।",
        "ta": "மன்னிக்கவும், நான் தொழில்நுட்ப சிக்கல்களை சந்திக்கிறேன். மீண்டும் முயற்சிக்கவும் அல்லது ஆதரவைத் தொடர்பு கொள்ளவும்.",
        "te": "క్షమించండి, నేను సాంకేతిక సమస్యలను ఎదుర్కొంటున్నాను. దయచేసి మళ్లీ ప్రయత్నించండి లేదా సహాయ విభాగాన్ని సంప్రదించండి.",
        "bn": "দুঃখিত, আমি প্রযুক্তিগত অসুবিধার সম্মুখীন হচ্ছি। অনুগ্রহ করে পুনরায় চেষ্টা করুন বা সহায়তার সাথে যোগাযোগ করুন।",
        "mr": "माफ करा, मला तांत्रिक समस्या येत आहे. कृपया पुन्हा प्रयत्न करा किंवा सहाय्य विभागाशी संपर्क साधा.",
    },
}


def normalise_language(language: str | None) -> str:
    """Map an arbitrary language code to a supported one (default: English)."""
    if not language:
        return DEFAULT_LANGUAGE
    code = language.strip().lower().split("-")[0]
    return code if code in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def get_translation(key: str, language: str) -> str:
    """Look up a static system message, falling back to English, then the key."""
    messages = _STATIC_MESSAGES.get(key)
    if not messages:
        return key
    return messages.get(language) or messages[SOURCE_LANGUAGE]


def get_fallback_message(language: str) -> str:
    return get_translation("fallback", language)


def get_technical_error_message(language: str) -> str:
    return get_translation("technical_error", language)
