"""
Schemas and shared constants.

- Collection registry and derived-view sources
- Storage shim document keys
- Status, error-log and storage-item models
"""

from .collection_names import DERIVED_VIEW_SOURCES, ENTITY_KIND_BY_COLLECTION, DatabaseCollectionNames
from .keys import StorageKeys
from .sync_status import CollectionStatus, DataSource, StorageItem, SyncErrorRecord, SyncStatus

__all__ = [
    "DatabaseCollectionNames",
    "ENTITY_KIND_BY_COLLECTION",
    "DERIVED_VIEW_SOURCES",
    "StorageKeys",
    "CollectionStatus",
    "DataSource",
    "StorageItem",
    "SyncErrorRecord",
    "SyncStatus",
]
