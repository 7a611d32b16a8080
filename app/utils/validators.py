"""
Input sanitisation and small extractors used by the flow steps.
"""

from __future__ import annotations

import re

MAX_MESSAGE_LENGTH = 1000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_SPACES = re.compile(r"[ \t]+")
_FIRST_INT = re.compile(r"\d+")


def sanitise_input(text: str | None) -> str:
    """Strip control characters and extra whitespace, cap the length."""
    if not text:
        return ""
    cleaned = _CONTROL_CHARS.sub("", text)
    cleaned = _SPACES.sub(" ", cleaned).strip()
    return cleaned[:MAX_MESSAGE_LENGTH]


def extract_semester(text: str) -> int | None:
    """First integer in *text* ("sem 3", "3rd semester" -> 3)."""
    match = _FIRST_INT.search(text or "")
    return int(match.group()) if match else None


def normalise_code(text: str) -> str:
    """'cse ai ml' -> 'CSE_AI_ML'"""
    return re.sub(r"\s+", "_", (text or "").strip()).upper()


def format_inr(amount: int | float) -> str:
    """
    Indian digit grouping with the rupee sign: 125000 -> '₹1,25,000'.
    Paise are kept only when non-zero.
    """
    negative = amount < 0
    rupees = int(abs(amount))
    paise = round((abs(amount) - rupees) * 100)
    digits = str(rupees)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups) + "," + tail
    formatted = f"₹{digits}" + (f".{paise:02d}" if paise else "")
    return f"-{formatted}" if negative else formatted
