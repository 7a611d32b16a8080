"""Glossary translator and the shared translation validity check."""

import pytest

from app.utils import glossary
from app.utils.glossary import GLOSSARY, glossary_translate, is_valid_translation


class TestGlossaryTranslate:
    def test_english_target_is_unchanged(self):
        assert glossary_translate("Monday Physics Lab", "en") == "Monday Physics Lab"

    def test_known_terms_are_replaced(self):
        assert glossary_translate("Monday", "hi") == "सोमवार"
        assert glossary_translate("Physics", "ta") == "இயற்பியல்"

    def test_longest_match_wins(self):
        text = glossary_translate("C Programming Lab", "ta")
        assert text == GLOSSARY["C Programming Lab"]["ta"]
        # "C Programming" and "Lab" substituted separately read differently in Tamil
        assert text != f"{GLOSSARY['C Programming']['ta']} {GLOSSARY['Lab']['ta']}"

    def test_longest_match_wins_regardless_of_table_order(self, monkeypatch):
        monkeypatch.setattr(
            glossary,
            "GLOSSARY",
            {
                "Lab": {"hi": "<lab>"},
                "Physics": {"hi": "<physics>"},
                "Physics Lab": {"hi": "<physics-lab>"},
            },
        )
        glossary._compiled_glossary.cache_clear()
        try:
            assert glossary_translate("Physics Lab and Lab", "hi") == "<physics-lab> and <lab>"
        finally:
            glossary._compiled_glossary.cache_clear()

    def test_case_insensitive(self):
        assert glossary_translate("monday", "te") == GLOSSARY["Monday"]["te"]
        assert glossary_translate("PHYSICS", "bn") == GLOSSARY["Physics"]["bn"]

    def test_whole_words_only(self):
        assert glossary_translate("Labrador", "hi") == "Labrador"
        assert glossary_translate("Mondays", "hi") == "Mondays"

    def test_structure_is_preserved(self):
        text = "📅 Monday\n• 09:00-10:00 — Physics [Lab]"
        translated = glossary_translate(text, "hi")
        assert translated == f"📅 {GLOSSARY['Monday']['hi']}\n• 09:00-10:00 — {GLOSSARY['Physics']['hi']} [{GLOSSARY['Lab']['hi']}]"

    def test_unknown_words_pass_through(self):
        assert glossary_translate("Quantum widgets", "mr") == "Quantum widgets"

    def test_single_pass(self):
        # "Semester Fees" is replaced as one phrase; its pieces are not re-matched
        translated = glossary_translate("Semester Fees", "hi")
        assert translated == GLOSSARY["Semester Fees"]["hi"]

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank_text(self, text):
        assert glossary_translate(text, "hi") == text


class TestIsValidTranslation:
    @pytest.mark.parametrize(
        "original, translated, language, expected",
        [
            ("Monday", "सोमवार", "hi", True),
            ("Monday", "", "hi", False),
            ("Monday", "   ", "hi", False),
            ("Monday", None, "hi", False),
            ("Monday", "Monday", "hi", False),          # untranslated
            ("Monday", "Monday", "en", True),
            ("3", "3", "hi", True),                     # nothing to translate
            ("₹95,000", "₹95,000", "ta", True),
            ("A fairly long sentence here", "ab", "hi", False),   # < 0.3x
            ("Hi", "x" * 10, "hi", False),              # > 3x
        ],
    )
    def test_cases(self, original, translated, language, expected):
        assert is_valid_translation(original, translated, language) is expected
