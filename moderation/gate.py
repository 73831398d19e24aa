"""Moderation gate run before every generation turn."""

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional
from pydantic import BaseModel, Field

from config.settings import DEFAULT_DENIAL_MESSAGE
from schemas.messages import Message, latest_user_message

logger = logging.getLogger(__name__)

FAIL_CLOSED_MESSAGE = (
    "Sorry, I couldn't check your message right now. Please try again in a moment."
)


class ModerationResult(BaseModel):
    """Verdict for one piece of user input."""
    flagged: bool
    denial_message: Optional[str] = None
    categories: List[str] = Field(default_factory=list)


class ModerationClassifier(ABC):
    """Black-box content classifier."""

    @abstractmethod
    def classify(self, text: str) -> ModerationResult:
        """Classify text; may raise if the backend is unavailable."""
        pass


class OpenAIModerationClassifier(ModerationClassifier):
    """Classifier backed by the OpenAI moderation endpoint."""

    DEFAULT_MODEL = "omni-moderation-latest"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        denial_message: str = DEFAULT_DENIAL_MESSAGE
    ):
        """
        Initialize moderation classifier.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Moderation model (default: omni-moderation-latest)
            denial_message: Reply shown to the user when input is flagged
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.denial_message = denial_message
        self.client = None

        if self.api_key:
            from openai import OpenAI
            self.client = OpenAI(api_key=self.api_key)
        else:
            logger.warning("No OpenAI API key provided for moderation")

    def classify(self, text: str) -> ModerationResult:
        if not self.client:
            raise RuntimeError("Moderation client not initialized. Check API key.")

        response = self.client.moderations.create(model=self.model, input=text)
        result = response.results[0]

        if not result.flagged:
            return ModerationResult(flagged=False)

        categories = [
            name for name, hit in result.categories.model_dump().items() if hit
        ]
        logger.info(f"Input flagged by moderation: {', '.join(categories)}")
        return ModerationResult(
            flagged=True,
            denial_message=self.denial_message,
            categories=categories
        )


class ModerationGate:
    """
    Decides whether a turn is short-circuited before generation.

    Only the latest user message is checked, never the full history. Empty
    input skips the classifier entirely. Any classifier failure is treated as
    flagged so unmoderated content never reaches the model.
    """

    def __init__(
        self,
        classifier: Optional[ModerationClassifier] = None,
        enabled: bool = True,
        fallback_message: str = DEFAULT_DENIAL_MESSAGE
    ):
        self.classifier = classifier
        self.enabled = enabled
        self.fallback_message = fallback_message

    @staticmethod
    def extract_text(messages: List[Message]) -> str:
        """Concatenate the text parts of the most recent user message."""
        message = latest_user_message(messages)
        return message.text if message else ""

    def check(self, messages: List[Message]) -> ModerationResult:
        """
        Run the gate against a conversation.

        Args:
            messages: Full conversation, latest user message last

        Returns:
            ModerationResult whose denial_message is always set when flagged
        """
        if not self.enabled:
            return ModerationResult(flagged=False)

        text = self.extract_text(messages)
        if not text:
            logger.debug("No user text to moderate, skipping gate")
            return ModerationResult(flagged=False)

        if self.classifier is None:
            logger.warning("Moderation enabled without a classifier, failing closed")
            return ModerationResult(flagged=True, denial_message=FAIL_CLOSED_MESSAGE)

        try:
            result = self.classifier.classify(text)
        except Exception as e:
            logger.error(f"Moderation check failed, failing closed: {e}")
            return ModerationResult(flagged=True, denial_message=FAIL_CLOSED_MESSAGE)

        if result.flagged and not result.denial_message:
            result = result.model_copy(update={"denial_message": self.fallback_message})
        return result
