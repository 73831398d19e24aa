"""Memory data models."""

import logging
from typing import Dict, List
from pydantic import BaseModel, Field, field_validator

from schemas.messages import Message

logger = logging.getLogger(__name__)


class Snapshot(BaseModel):
    """The sole durable state of a chat session."""
    messages: List[Message] = Field(default_factory=list)
    durations: Dict[str, float] = Field(default_factory=dict)  # "{message_id}-{part_index}" -> ms

    @field_validator("durations", mode="before")
    @classmethod
    def drop_bad_durations(cls, v):
        """Durations are display-only; a bad entry never costs the conversation."""
        if not isinstance(v, dict):
            logger.warning(f"Discarding durations of type {type(v).__name__}")
            return {}
        kept = {
            key: value for key, value in v.items()
            if isinstance(key, str) and isinstance(value, (int, float)) and not isinstance(value, bool)
        }
        if len(kept) != len(v):
            logger.warning(f"Dropped {len(v) - len(kept)} malformed duration entries")
        return kept
