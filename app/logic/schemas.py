"""
Shapes exchanged between the flow controller, the translation middleware
and the chat API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class AwaitingStep(str, Enum):
    PROGRAM = "program"
    BRANCH = "branch"
    SEMESTER = "semester"
    SCHOLARSHIP_FOLLOWUP = "scholarship_followup"


class TranslationMethod(str, Enum):
    PRIMARY = "primary"
    GLOSSARY = "glossary"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class TranslationResult:
    success: bool
    translated: str
    method: TranslationMethod
    language: str


@dataclass(frozen=True)
class Option:
    """A quick-reply button: `value` is what the client sends back."""
    id: str
    label: str
    value: str


@dataclass
class FlowResponse:
    message: str
    options: list[Option] = field(default_factory=list)
    requires_next_step: bool = False
    current_step: AwaitingStep | None = None
    final_answer: str | None = None
    # Set when the message is already in the user's language (the class
    # timetable is assembled from per-field translations).
    rendering: TranslationResult | None = None
