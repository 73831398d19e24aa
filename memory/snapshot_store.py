"""Load/save of the persisted chat snapshot."""

import logging
from pydantic import ValidationError

from schemas.messages import ConversationError, validate_conversation
from .models import Snapshot
from .sqlite_store import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "chat-messages"


class SnapshotStore:
    """Serializes the snapshot as a single blob under a fixed key."""

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def load(self) -> Snapshot:
        """
        Read the snapshot.

        Missing or corrupt data degrades to an empty snapshot; it never
        raises.
        """
        try:
            raw = self.store.get(self.key)
        except Exception as e:
            logger.error(f"Failed to read snapshot '{self.key}': {e}")
            return Snapshot()

        if not raw:
            return Snapshot()

        try:
            snapshot = Snapshot.model_validate_json(raw)
            validate_conversation(snapshot.messages)
        except (ValidationError, ConversationError) as e:
            logger.warning(f"Discarding corrupt snapshot '{self.key}': {e}")
            return Snapshot()

        logger.info(f"Loaded snapshot with {len(snapshot.messages)} messages")
        return snapshot

    def save(self, snapshot: Snapshot):
        """Write the snapshot; storage failures are logged, not raised."""
        try:
            self.store.set(self.key, snapshot.model_dump_json())
        except Exception as e:
            logger.error(f"Failed to save snapshot '{self.key}': {e}")

    def clear(self):
        try:
            self.store.delete(self.key)
        except Exception as e:
            logger.error(f"Failed to clear snapshot '{self.key}': {e}")
