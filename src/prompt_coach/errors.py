# ABOUTME: Defines the error taxonomy raised by the learning-analytics engine.
# ABOUTME: Separates call-order misuse from configuration problems.

from __future__ import annotations


class LearningEngineError(Exception):
    """Base class for errors raised by the engine."""


class SessionNotFoundError(LearningEngineError, LookupError):
    """Raised when an attempt is recorded before ``start_session`` for its key."""

    def __init__(self, user_id: str, template_id: str):
        super().__init__(
            f"Learning session not found for user '{user_id}' and template '{template_id}'. "
            "Call start_session first."
        )
        self.user_id = user_id
        self.template_id = template_id


class NoProgressError(LearningEngineError, LookupError):
    """Raised when a report is requested for a user with no recorded progress."""

    def __init__(self, user_id: str):
        super().__init__(f"No learning progress found for user '{user_id}'.")
        self.user_id = user_id
