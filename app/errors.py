"""
Exception types shared across the chatbot core.
"""

from __future__ import annotations


class ChatbotError(Exception):
    """Base class for all chatbot errors."""


class StateStoreUnavailable(ChatbotError):
    """The conversation state store could not be read or written."""


class InvalidSessionId(StateStoreUnavailable):
    """The session id cannot be used as a state-store document id."""


class ConcurrentUpdateError(ChatbotError):
    """A session was modified by another request between read and write."""

    def __init__(self, session_id: str, expected: int, actual: int):
        super().__init__(
            f"Session {session_id} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.session_id = session_id
        self.expected = expected
        self.actual = actual


class ReferenceDataError(ChatbotError):
    """A campus reference-data lookup failed."""


class TranslationError(ChatbotError):
    """The primary translator failed or returned nothing usable."""
