import asyncio
import inspect
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..schemas.collection_names import DERIVED_VIEW_SOURCES, DatabaseCollectionNames
from ..schemas.sync_status import CollectionStatus, SyncStatus
from ..utils.config import READY_TIMEOUT_SECONDS, REFRESH_INTERVAL_SECONDS
from ..utils.exceptions import NotReadyError, PermissionDeniedError
from ..utils.logger import logger
from ..utils.time_now import TimeManager
from .cache import CacheEntry, CollectionCache
from .context import SyncContext
from .error_log import SyncErrorLog
from .resolver import FallbackResolver

DataChangeCallback = Callable[[str, List[Dict[str, Any]]], Any]

CRITICAL_COLLECTION = DatabaseCollectionNames.PRODUCTS.value
BACKGROUND_COLLECTIONS = tuple(
    name.value for name in DatabaseCollectionNames.primary() if name is not DatabaseCollectionNames.PRODUCTS
)
DERIVED_VIEWS = {view.value: (source.value, field) for view, (source, field) in DERIVED_VIEW_SOURCES.items()}


class OrchestratorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    REFRESHING = "refreshing"
    FAILED = "failed"


def derive_view(records: Sequence[Mapping[str, Any]], field: str) -> List[Dict[str, str]]:
    """Distinct non-empty values of ``field`` as ``{id, name}`` records, in order of first appearance."""
    seen = []
    for record in records:
        value = record.get(field)
        if value is None:
            continue
        value = str(value).strip()
        if value and value not in seen:
            seen.append(value)
    return [{"id": value, "name": value} for value in seen]


class SyncOrchestrator:
    """
    Coordinates collection loading for the UI.

    ``load_all`` awaits products (the critical path), derives categories,
    subcategories, brands and price lists from them, marks the orchestrator ready
    and loads every other collection in the background. Callers read through
    ``get_data`` and subscribe with ``on_data_change``.
    """

    def __init__(
        self,
        context: SyncContext,
        resolver: FallbackResolver,
        cache: CollectionCache,
        error_log: SyncErrorLog,
        datastore=None,
        ready_timeout: float = READY_TIMEOUT_SECONDS,
        refresh_interval: float = REFRESH_INTERVAL_SECONDS,
    ):
        self.context = context
        self.resolver = resolver
        self.cache = cache
        self.error_log = error_log
        self.datastore = datastore
        self.ready_timeout = ready_timeout
        self.refresh_interval = refresh_interval

        self.resolver.on_replaced = self._handle_replaced

        self.state = OrchestratorState.UNINITIALIZED
        self.primary_available: Optional[bool] = None
        self.last_refresh_at: Optional[datetime] = None

        self._ready_event = asyncio.Event()
        self._load_all_task: Optional[asyncio.Task] = None
        self._background_load_task: Optional[asyncio.Task] = None
        self._refresh_loop_task: Optional[asyncio.Task] = None
        self._active_refreshes = 0
        self._listeners: Dict[str, List[DataChangeCallback]] = defaultdict(list)
        self._watch_handles: Dict[str, Callable[[], None]] = {}
        self._callback_tasks: set = set()

    @property
    def is_ready(self) -> bool:
        return self.state in (OrchestratorState.READY, OrchestratorState.REFRESHING)

    # ------------------------------------------------------------------ #
    #  ─── Initial load ─────────────── #
    # ------------------------------------------------------------------ #
    async def load_all(self) -> None:
        if self._load_all_task is None:
            self._load_all_task = asyncio.ensure_future(self._perform_load_all())
        await asyncio.shield(self._load_all_task)

    async def _perform_load_all(self) -> None:
        self.state = OrchestratorState.INITIALIZING
        mode = "Admin Mode" if self.context.is_privileged else "Fallback-First Mode"
        logger.info(f"🚀 Loading collections ({mode})")
        started = TimeManager.monotonic()

        try:
            products = await self.resolver.load_collection(CRITICAL_COLLECTION)
            if not all(self.cache.is_valid(view) for view in DERIVED_VIEWS):
                self._derive_views(products)
        except Exception as e:
            self.state = OrchestratorState.FAILED
            self.error_log.record(CRITICAL_COLLECTION, e)
            logger.error(f"❌ Critical data loading failed: {e}")
            self._ready_event.set()
            return

        self.state = OrchestratorState.READY
        self.last_refresh_at = TimeManager.get_time_now()
        self._ready_event.set()
        logger.info(f"✅ Critical data loaded in {(TimeManager.monotonic() - started) * 1000:.0f}ms")

        self._background_load_task = asyncio.ensure_future(self._load_background(started))

    async def _load_background(self, started: float) -> None:
        await asyncio.gather(*(self.resolver.load_collection(name) for name in BACKGROUND_COLLECTIONS))
        logger.info(f"⚡ Background data loading completed in {(TimeManager.monotonic() - started) * 1000:.0f}ms")

    async def wait_for_background(self) -> None:
        """Resolves once the non-critical collections started by ``load_all`` have loaded."""
        if self._background_load_task is not None:
            await asyncio.shield(self._background_load_task)

    async def wait_until_ready(self, timeout: Optional[float] = None) -> None:
        if self.state is OrchestratorState.FAILED:
            raise NotReadyError("Data loading failed for this process")
        if self.state is OrchestratorState.UNINITIALIZED and self._load_all_task is None:
            self._load_all_task = asyncio.ensure_future(self._perform_load_all())

        wait = self.ready_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(self._ready_event.wait(), timeout=wait)
        except asyncio.TimeoutError:
            raise NotReadyError(f"Data was not ready after {wait:.0f}s") from None

        if self.state is OrchestratorState.FAILED:
            raise NotReadyError("Data loading failed for this process")

    # ------------------------------------------------------------------ #
    #  ─── Reads ─────────────── #
    # ------------------------------------------------------------------ #
    async def get_data(self, name: str) -> List[Dict[str, Any]]:
        await self.wait_until_ready()

        if name in DERIVED_VIEWS:
            source, _ = DERIVED_VIEWS[name]
            if not self.cache.is_valid(source):
                await self.resolver.load_collection(source)
            if self.cache.get(name) is None:
                self._derive_views(self._records(source))
            return self._records(name)

        if self.cache.is_valid(name):
            return self._records(name)
        return await self.resolver.load_collection(name)

    def _records(self, name: str) -> List[Dict[str, Any]]:
        entry = self.cache.get(name)
        return entry.as_list() if entry is not None else []

    async def get_filtered_data(self, name: str, predicate: Callable[[Mapping[str, Any]], bool]) -> List[Dict[str, Any]]:
        return [record for record in await self.get_data(name) if predicate(record)]

    async def get_products_by(self, field: str, value: str) -> List[Dict[str, Any]]:
        return await self.get_filtered_data(CRITICAL_COLLECTION, lambda product: product.get(field) == value)

    # ------------------------------------------------------------------ #
    #  ─── Refresh ─────────────── #
    # ------------------------------------------------------------------ #
    async def refresh(self, name: Optional[str] = None) -> Optional[List[Dict[str, Any]]]:
        if self.state is OrchestratorState.FAILED:
            raise NotReadyError("Data loading failed for this process")
        if self.state in (OrchestratorState.UNINITIALIZED, OrchestratorState.INITIALIZING):
            await self.load_all()
            return self._records(name) if name else None

        if name in DERIVED_VIEWS:
            name = DERIVED_VIEWS[name][0]

        self._active_refreshes += 1
        self.state = OrchestratorState.REFRESHING
        try:
            if name is None:
                logger.info("🔄 Refreshing all collections")
                names = (CRITICAL_COLLECTION,) + BACKGROUND_COLLECTIONS
                await asyncio.gather(*(self.resolver.load_collection(n, force=True) for n in names))
                result = None
            else:
                logger.info(f"🔄 Refreshing {name}")
                result = await self.resolver.load_collection(name, force=True)
            self.last_refresh_at = TimeManager.get_time_now()
            return result
        finally:
            self._active_refreshes -= 1
            if self._active_refreshes == 0 and self.state is OrchestratorState.REFRESHING:
                self.state = OrchestratorState.READY

    def start_background_refresh(self, interval: Optional[float] = None) -> None:
        if self._refresh_loop_task is not None and not self._refresh_loop_task.done():
            return
        every = self.refresh_interval if interval is None else interval
        self._refresh_loop_task = asyncio.ensure_future(self._refresh_loop(every))
        logger.info(f"⏰ Background refresh every {every:.0f}s")

    async def _refresh_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if not self.is_ready:
                continue
            try:
                await self.refresh()
            except NotReadyError:
                return
            except Exception as e:
                self.error_log.record("*", e, source="background-refresh")
                logger.error(f"❌ Background refresh failed: {e}")

    def stop_background_refresh(self) -> None:
        if self._refresh_loop_task is not None:
            self._refresh_loop_task.cancel()
            self._refresh_loop_task = None

    # ------------------------------------------------------------------ #
    #  ─── Change notification ─────────────── #
    # ------------------------------------------------------------------ #
    def on_data_change(self, name: str, callback: DataChangeCallback) -> Callable[[], None]:
        self._listeners[name].append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners.get(name, []):
                self._listeners[name].remove(callback)

        return unsubscribe

    def _notify(self, name: str, records: List[Dict[str, Any]]) -> None:
        for callback in list(self._listeners.get(name, [])):
            try:
                result = callback(name, records)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._callback_tasks.add(task)
                    task.add_done_callback(self._callback_tasks.discard)
            except Exception as e:
                logger.error(f"❌ Error in data change listener for {name}: {e}")

    def _handle_replaced(self, name: str, entry: CacheEntry) -> None:
        records = entry.as_list()
        if name == CRITICAL_COLLECTION:
            self._derive_views(records)
        self._notify(name, records)

    def _derive_views(self, products: Sequence[Mapping[str, Any]]) -> None:
        counts = []
        for view, (_, field) in DERIVED_VIEWS.items():
            entry = self.cache.put(view, derive_view(products, field))
            counts.append(f"{len(entry.records)} {view}")
            self._notify(view, entry.as_list())
        logger.info(f"📊 Extracted derived data: {', '.join(counts)}")

    # ------------------------------------------------------------------ #
    #  ─── Writes and realtime ─────────────── #
    # ------------------------------------------------------------------ #
    async def save_record(self, name: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        saved = await self.resolver.write_record(name, record)
        self.cache.invalidate(name)
        await self.refresh(name)
        return saved

    async def delete_record(self, name: str, doc_id: str) -> None:
        await self.resolver.delete_record(name, doc_id)
        self.cache.invalidate(name)
        await self.refresh(name)

    def enable_watch(self, name: str) -> None:
        """Refresh ``name`` whenever Firestore reports a change. Admin pages only."""
        if not self.context.is_privileged:
            raise PermissionDeniedError(f"Realtime updates for {name} require an admin page", collection=name)
        if name in self._watch_handles or self.datastore is None:
            return

        def _on_change(_records) -> None:
            self.cache.invalidate(name)
            task = asyncio.ensure_future(self.refresh(name))
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_tasks.discard)

        self._watch_handles[name] = self.datastore.watch(name, _on_change)

    def disable_watch(self, name: str) -> None:
        unsubscribe = self._watch_handles.pop(name, None)
        if unsubscribe is not None:
            unsubscribe()

    # ------------------------------------------------------------------ #
    #  ─── Status ─────────────── #
    # ------------------------------------------------------------------ #
    async def check_primary_available(self) -> Optional[bool]:
        if self.context.is_restricted or self.datastore is None:
            self.primary_available = None
        elif self.resolver.monitor is not None:
            self.primary_available = await self.resolver.monitor.check()
        else:
            self.primary_available = await self.datastore.is_available()
        return self.primary_available

    def get_status(self) -> SyncStatus:
        monitor = self.resolver.monitor
        collections = {}
        for name in DatabaseCollectionNames.registry():
            entry = self.cache.get(name)
            source_name = DERIVED_VIEWS[name][0] if name in DERIVED_VIEWS else name
            collections[name] = CollectionStatus(
                count=len(entry.records) if entry is not None else 0,
                source=self.resolver.sources.get(source_name),
                cache_valid=self.cache.is_valid(name),
                last_loaded_at=self.resolver.loaded_at.get(source_name),
            )

        return SyncStatus(
            state=self.state.value,
            mode=self.context.mode.value,
            page_identity=self.context.page_identity,
            is_ready=self.is_ready,
            primary_available=self.primary_available,
            collections=collections,
            last_refresh_at=self.last_refresh_at,
            background_refresh_active=self._refresh_loop_task is not None and not self._refresh_loop_task.done(),
            recent_errors=self.error_log.recent(),
            circuit_breaker=monitor.state.value if monitor is not None else None,
            consecutive_failures=monitor.consecutive_failures if monitor is not None else 0,
        )

    async def close(self) -> None:
        self.stop_background_refresh()
        for name in list(self._watch_handles):
            self.disable_watch(name)
