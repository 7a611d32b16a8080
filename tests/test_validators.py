"""Input sanitisation, step-answer extractors and rupee formatting."""

import pytest

from app.utils.validators import MAX_MESSAGE_LENGTH, extract_semester, format_inr, normalise_code, sanitise_input

test_cases_inr = [
    (0, "₹0"),
    (999, "₹999"),
    (1000, "₹1,000"),
    (95000, "₹95,000"),
    (100000, "₹1,00,000"),
    (125000, "₹1,25,000"),
    (12345678, "₹1,23,45,678"),
    (1250.5, "₹1,250.50"),
]

test_cases_semester = [
    ("3", 3),
    ("semester 5", 5),
    ("3rd semester", 3),
    ("sem 2 or 4", 2),
    ("first semester", None),
    ("", None),
]


class TestFormatInr:
    @pytest.mark.parametrize("amount, expected", test_cases_inr)
    def test_indian_grouping(self, amount, expected):
        assert format_inr(amount) == expected


class TestExtractSemester:
    @pytest.mark.parametrize("text, expected", test_cases_semester)
    def test_first_integer(self, text, expected):
        assert extract_semester(text) == expected


class TestNormaliseCode:
    @pytest.mark.parametrize(
        "text, expected",
        [("cse", "CSE"), ("  cse ai ml ", "CSE_AI_ML"), ("B Tech", "B_TECH")],
    )
    def test_upper_and_underscores(self, text, expected):
        assert normalise_code(text) == expected


class TestSanitiseInput:
    def test_strips_control_characters_and_spaces(self):
        assert sanitise_input("  what\x00 are   the\tfees?  ") == "what are the fees?"

    def test_caps_length(self):
        assert len(sanitise_input("a" * 5000)) == MAX_MESSAGE_LENGTH

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text):
        assert sanitise_input(text) == ""
