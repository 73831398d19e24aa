"""Memory system for conversation persistence."""

from .models import Snapshot
from .sqlite_store import KeyValueStore, InMemoryKeyValueStore, SQLiteKeyValueStore
from .snapshot_store import SnapshotStore, STORAGE_KEY
from .session import ChatSession, TurnInProgressError, InvalidInputError

__all__ = [
    "Snapshot",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "SnapshotStore",
    "STORAGE_KEY",
    "ChatSession",
    "TurnInProgressError",
    "InvalidInputError",
]
