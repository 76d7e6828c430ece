from dataclasses import dataclass
from typing import Callable, Optional

from ..api.http_fallback import HttpFallbackClient
from ..firestore.datastore import FirestoreDatastore
from ..firestore.storage import FirestoreStorage
from ..local.kv_store import JsonFileKeyValueStore
from ..local.snapshot import LocalSnapshotStore
from ..utils.config import (
    CACHE_TIMEOUT_SECONDS,
    ERROR_LOG_SIZE,
    LOCAL_STORE_PATH,
    PAGE_IDENTITY,
    READY_TIMEOUT_SECONDS,
    REFRESH_INTERVAL_SECONDS,
)
from ..utils.logger import logger
from ..utils.time_now import TimeManager
from .availability import AvailabilityMonitor
from .cache import CollectionCache
from .context import SyncContext
from .error_log import SyncErrorLog
from .orchestrator import SyncOrchestrator
from .resolver import FallbackResolver
from .retry import RetryExecutor


@dataclass
class SyncEnvironment:
    """Everything one process needs to read and write collections, built once at start-up."""

    context: SyncContext
    cache: CollectionCache
    error_log: SyncErrorLog
    executor: RetryExecutor
    resolver: FallbackResolver
    orchestrator: SyncOrchestrator
    storage: Optional[FirestoreStorage] = None
    monitor: Optional[AvailabilityMonitor] = None

    async def start(self, background_refresh: bool = True) -> None:
        await self.orchestrator.load_all()
        if background_refresh:
            self.orchestrator.start_background_refresh()
            if self.monitor is not None:
                self.monitor.start()

    async def close(self) -> None:
        if self.monitor is not None:
            self.monitor.stop()
        await self.orchestrator.close()
        api_client = self.resolver.api_client
        if api_client is not None:
            await api_client.aclose()


def build_environment(
    page_identity: str = PAGE_IDENTITY,
    context: Optional[SyncContext] = None,
    datastore=None,
    kv_store=None,
    api_client=None,
    executor: Optional[RetryExecutor] = None,
    monitor: Optional[AvailabilityMonitor] = None,
    cache_timeout: float = CACHE_TIMEOUT_SECONDS,
    ready_timeout: float = READY_TIMEOUT_SECONDS,
    refresh_interval: float = REFRESH_INTERVAL_SECONDS,
    error_log_size: int = ERROR_LOG_SIZE,
    clock: Callable[[], float] = TimeManager.monotonic,
) -> SyncEnvironment:
    """
    Wire the sync components for one process.

    Restricted pages never get a datastore or an API client, so nothing they do can
    reach the network. Privileged pages get the shared Firestore client and the
    HTTP fallback unless others are passed in, plus a circuit breaker around Firestore.
    """
    context = context or SyncContext.from_page(page_identity)
    kv_store = kv_store if kv_store is not None else JsonFileKeyValueStore(LOCAL_STORE_PATH)

    if context.is_privileged:
        if datastore is None:
            datastore = FirestoreDatastore()
        if api_client is None:
            api_client = HttpFallbackClient()
        if monitor is None:
            monitor = AvailabilityMonitor(datastore, clock=clock)
    else:
        datastore = None
        api_client = None
        monitor = None

    cache = CollectionCache(timeout=cache_timeout, clock=clock)
    error_log = SyncErrorLog(max_size=error_log_size)
    executor = executor or RetryExecutor()
    resolver = FallbackResolver(
        context,
        cache,
        executor,
        error_log,
        datastore=datastore,
        snapshot_store=LocalSnapshotStore(kv_store),
        api_client=api_client,
        monitor=monitor,
    )
    orchestrator = SyncOrchestrator(
        context,
        resolver,
        cache,
        error_log,
        datastore=datastore,
        ready_timeout=ready_timeout,
        refresh_interval=refresh_interval,
    )
    storage = FirestoreStorage(datastore, kv_store)

    logger.info(f"🧭 Sync environment built for '{context.page_identity or 'unknown page'}' ({context.mode.value})")
    return SyncEnvironment(
        context=context,
        cache=cache,
        error_log=error_log,
        executor=executor,
        resolver=resolver,
        orchestrator=orchestrator,
        storage=storage,
        monitor=monitor,
    )
