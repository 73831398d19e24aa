"""Content moderation for user input."""

from .gate import (
    ModerationGate,
    ModerationResult,
    ModerationClassifier,
    OpenAIModerationClassifier,
    FAIL_CLOSED_MESSAGE,
)

__all__ = [
    "ModerationGate",
    "ModerationResult",
    "ModerationClassifier",
    "OpenAIModerationClassifier",
    "FAIL_CLOSED_MESSAGE",
]
