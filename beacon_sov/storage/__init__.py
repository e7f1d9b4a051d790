"""
Storage module for BeaconSOV.

Public API:
    - MentionFactStore: Storage port used by the runner and CLI
    - SQLiteMentionFactStore: SQLite-backed store with versioned schema
    - InMemoryMentionFactStore: Process-local store for tests and dry runs
"""

from beacon_sov.storage.repository import (
    InMemoryMentionFactStore,
    MentionFactStore,
    SQLiteMentionFactStore,
)

__all__ = [
    "InMemoryMentionFactStore",
    "MentionFactStore",
    "SQLiteMentionFactStore",
]
