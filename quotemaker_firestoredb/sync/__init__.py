"""
Collection synchronisation: context, cache, retry executor, fallback resolver
and the orchestrator that ties them together.
"""

from .cache import CacheEntry, CollectionCache
from .comparison import CollectionComparison, compare_sources
from .context import SyncContext, SyncMode
from .environment import SyncEnvironment, build_environment
from .error_log import SyncErrorLog
from .orchestrator import OrchestratorState, SyncOrchestrator, derive_view
from .resolver import FallbackResolver, ResolverStrategy
from .retry import RetryExecutor

__all__ = [
    "CacheEntry",
    "CollectionCache",
    "CollectionComparison",
    "compare_sources",
    "SyncContext",
    "SyncMode",
    "SyncEnvironment",
    "build_environment",
    "SyncErrorLog",
    "OrchestratorState",
    "SyncOrchestrator",
    "derive_view",
    "FallbackResolver",
    "ResolverStrategy",
    "RetryExecutor",
]
