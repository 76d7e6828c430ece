"""
Local persistent storage used when the primary datastore is unreachable or denied.
"""

from .kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from .snapshot import LocalSnapshotStore

__all__ = [
    "JsonFileKeyValueStore",
    "MemoryKeyValueStore",
    "LocalSnapshotStore",
]
