"""
Data synchronisation layer for the QuoteMaker price-list application.

This package contains:
- Firestore access (client bootstrap, datastore adapter, key/value storage shim)
- Local snapshot storage and the REST fallback client
- Collection cache, retry executor, fallback resolver and sync orchestrator
- Record normalization, schemas and shared utilities
"""

__version__ = "1.0.0"

# Firestore access
from .firestore.client import FirestoreClient
from .firestore.datastore import FirestoreDatastore
from .firestore.storage import FirestoreStorage

# Local and HTTP fallbacks
from .local.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from .local.snapshot import LocalSnapshotStore
from .api.http_fallback import HttpFallbackClient

# Synchronisation
from .sync.cache import CollectionCache
from .sync.comparison import compare_sources
from .sync.context import SyncContext, SyncMode
from .sync.environment import SyncEnvironment, build_environment
from .sync.error_log import SyncErrorLog
from .sync.orchestrator import OrchestratorState, SyncOrchestrator
from .sync.resolver import FallbackResolver
from .sync.retry import RetryExecutor

# Schemas and models
from .schemas.collection_names import DatabaseCollectionNames
from .schemas.keys import StorageKeys
from .schemas.sync_status import DataSource, SyncStatus

# Utilities
from .sheets.importer import SpreadsheetImporter, rows_to_mappings
from .utils.exceptions import NotReadyError, PermissionDeniedError, SyncError
from .utils.record_normalizer import RecordNormalizer

__all__ = [
    "__version__",
    # Firestore
    "FirestoreClient",
    "FirestoreDatastore",
    "FirestoreStorage",
    # Fallbacks
    "JsonFileKeyValueStore",
    "MemoryKeyValueStore",
    "LocalSnapshotStore",
    "HttpFallbackClient",
    # Sync
    "CollectionCache",
    "compare_sources",
    "SyncContext",
    "SyncMode",
    "SyncEnvironment",
    "build_environment",
    "SyncErrorLog",
    "OrchestratorState",
    "SyncOrchestrator",
    "FallbackResolver",
    "RetryExecutor",
    # Schemas
    "DatabaseCollectionNames",
    "StorageKeys",
    "DataSource",
    "SyncStatus",
    # Utilities
    "SpreadsheetImporter",
    "rows_to_mappings",
    "NotReadyError",
    "PermissionDeniedError",
    "SyncError",
    "RecordNormalizer",
]
