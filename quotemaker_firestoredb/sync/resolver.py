import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from ..schemas.collection_names import ENTITY_KIND_BY_COLLECTION, DatabaseCollectionNames
from ..schemas.sync_status import DataSource
from ..utils.error_codes import ErrorCodes
from ..utils.exceptions import (
    PermissionDeniedError,
    SnapshotUnavailableError,
    UnavailableError,
    UnknownCollectionError,
)
from ..utils.logger import logger
from ..utils.record_normalizer import RecordNormalizer
from ..utils.time_now import TimeManager
from .availability import AvailabilityMonitor
from .cache import CacheEntry, CollectionCache
from .context import SyncContext
from .error_log import SyncErrorLog
from .retry import RetryExecutor

Loader = Callable[[str], Awaitable[Sequence[Mapping[str, Any]]]]
ReplacedListener = Callable[[str, CacheEntry], None]


@dataclass(frozen=True)
class ResolverStrategy:
    """One named data source in the fallback pipeline."""

    source: DataSource
    load: Loader
    after_permission_denied_only: bool = False

    def applies(self, previous_error: Optional[BaseException]) -> bool:
        if not self.after_permission_denied_only:
            return True
        return previous_error is not None and ErrorCodes.is_permission_error(previous_error)


class FallbackResolver:
    """
    Loads one primary collection through the pipeline allowed by the sync context.

    Privileged: Firestore (with retries, behind the circuit breaker when a monitor is
    given), then the REST API if Firestore denied access.
    Restricted: the local snapshot only, never the network.

    Concurrent loads of the same collection share one in-flight task. A load that
    exhausts every strategy resolves to an empty list and leaves a record in the
    error log; it never raises.
    """

    def __init__(
        self,
        context: SyncContext,
        cache: CollectionCache,
        executor: RetryExecutor,
        error_log: SyncErrorLog,
        datastore=None,
        snapshot_store=None,
        api_client=None,
        on_replaced: Optional[ReplacedListener] = None,
        monitor: Optional[AvailabilityMonitor] = None,
    ):
        self.context = context
        self.cache = cache
        self.executor = executor
        self.error_log = error_log
        self.datastore = datastore
        self.snapshot_store = snapshot_store
        self.api_client = api_client
        self.on_replaced = on_replaced
        self.monitor = monitor

        self.sources: Dict[str, DataSource] = {}
        self.loaded_at: Dict[str, datetime] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}
        self.strategies: List[ResolverStrategy] = self._build_strategies()

    # ------------------------------------------------------------------ #
    #  ─── Strategy pipeline ─────────────── #
    # ------------------------------------------------------------------ #
    def _build_strategies(self) -> List[ResolverStrategy]:
        if self.context.is_restricted:
            return [ResolverStrategy(DataSource.LOCAL, self._load_from_snapshot)]
        return [
            ResolverStrategy(DataSource.FIRESTORE, self._load_from_firestore),
            ResolverStrategy(DataSource.API, self._load_from_api, after_permission_denied_only=True),
        ]

    async def _load_from_firestore(self, name: str):
        if self.datastore is None:
            raise UnavailableError("No primary datastore configured", collection=name)
        if self.monitor is not None and not self.monitor.allow_request():
            raise UnavailableError(f"Circuit breaker is open, skipping Firestore for '{name}'", collection=name)
        try:
            records = await self.executor.execute(
                lambda: self.datastore.read_collection(name), description=f"read '{name}'"
            )
        except Exception as e:
            if self.monitor is not None:
                self.monitor.record_failure(e)
            raise
        if self.monitor is not None:
            self.monitor.record_success()
        return records

    async def _load_from_snapshot(self, name: str):
        if self.snapshot_store is None:
            raise SnapshotUnavailableError("No local snapshot store configured", collection=name)
        return self.snapshot_store.read_collection(name)

    async def _load_from_api(self, name: str):
        if self.api_client is None:
            raise PermissionDeniedError("Firestore denied access and no API fallback is configured", collection=name)
        return await self.api_client.get_collection(name)

    # ------------------------------------------------------------------ #
    #  ─── Reads ─────────────── #
    # ------------------------------------------------------------------ #
    def in_flight(self, name: str) -> bool:
        return name in self._in_flight

    async def load_collection(self, name: str, force: bool = False) -> List[Dict[str, Any]]:
        if not force and self.cache.is_valid(name):
            logger.debug(f"🗃️ Cache hit for '{name}'")
            self.sources.setdefault(name, DataSource.CACHE)
            return self.cache.get(name).as_list()

        task = self._in_flight.get(name)
        if task is None or task.done():
            task = asyncio.ensure_future(self._resolve(name))
            self._in_flight[name] = task
            task.add_done_callback(lambda done, key=name: self._forget(key, done))
        else:
            logger.debug(f"🔗 Joining in-flight load for '{name}'")

        # a caller that stops waiting must not cancel the shared load
        return await asyncio.shield(task)

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._in_flight.get(name) is task:
            del self._in_flight[name]

    async def _resolve(self, name: str) -> List[Dict[str, Any]]:
        collection = DatabaseCollectionNames.parse(name)
        kind = ENTITY_KIND_BY_COLLECTION.get(collection) if collection else None
        if kind is None:
            error = UnknownCollectionError(f"Unknown collection: {name}", collection=name)
            self.error_log.record(name, error)
            logger.error(f"❌ {error}")
            return []

        last_error: Optional[BaseException] = None
        for strategy in self.strategies:
            if not strategy.applies(last_error):
                continue
            try:
                raw_records = await strategy.load(name)
            except Exception as e:
                last_error = e
                self.error_log.record(name, e, source=strategy.source.value)
                if ErrorCodes.is_permission_error(e):
                    logger.warning(f"🔒 Permission denied for {name} via {strategy.source.value}: {e}")
                else:
                    logger.warning(f"⚠️ Loading {name} via {strategy.source.value} failed: {e}")
                continue

            records = RecordNormalizer.normalize_many(kind, raw_records)
            entry = self.cache.put(name, records)
            self.sources[name] = strategy.source
            self.loaded_at[name] = TimeManager.get_time_now()
            logger.info(f"✅ Loaded {len(records)} {name} from {strategy.source.value}")

            if strategy.source in (DataSource.FIRESTORE, DataSource.API):
                self._save_snapshot(name, records)
            if self.on_replaced is not None:
                self.on_replaced(name, entry)
            return entry.as_list()

        self.sources[name] = DataSource.EMPTY
        logger.error(f"❌ Every source failed for {name}, using empty list")
        return []

    def _save_snapshot(self, name: str, records: Sequence[Mapping[str, Any]]) -> None:
        """Keep the local snapshot current so restricted pages have data to read."""
        if self.snapshot_store is None:
            return
        try:
            self.snapshot_store.save_collection(name, records)
        except Exception as e:
            self.error_log.record(name, e, source=DataSource.LOCAL.value)
            logger.warning(f"⚠️ Could not refresh local snapshot for {name}: {e}")

    # ------------------------------------------------------------------ #
    #  ─── Writes ─────────────── #
    # ------------------------------------------------------------------ #
    def _require_privileged(self, name: str, operation: str) -> None:
        if not self.context.is_privileged:
            raise PermissionDeniedError(
                f"{operation} on {name} is not allowed from page '{self.context.page_identity}'", collection=name
            )

    def _kind_for(self, name: str) -> str:
        collection = DatabaseCollectionNames.parse(name)
        kind = ENTITY_KIND_BY_COLLECTION.get(collection) if collection else None
        if kind is None:
            raise UnknownCollectionError(f"Unknown collection: {name}", collection=name)
        return kind

    async def write_record(self, name: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Normalize and merge one record. Only the fields the caller supplies are written,
        so saving part of a record keeps the rest of the stored document. Falls back to
        ``POST /api/<name>`` on permission denial.
        """
        self._require_privileged(name, "Write")
        normalized = RecordNormalizer.normalize(self._kind_for(name), record, fill_missing=False)
        doc_id = normalized.pop("id", "") or None
        fields = {key: list(value) if isinstance(value, tuple) else value for key, value in normalized.items()}

        try:
            if self.datastore is None:
                raise UnavailableError("No primary datastore configured", collection=name)
            saved_id = await self.executor.execute(
                lambda: self.datastore.write_document(name, doc_id, fields), description=f"write '{name}'"
            )
            logger.info(f"✅ Saved {name}/{saved_id} to Firestore")
            return {"id": saved_id, **fields}
        except Exception as e:
            self.error_log.record(name, e, source=DataSource.FIRESTORE.value)
            if not ErrorCodes.is_permission_error(e) or self.api_client is None:
                raise
            logger.warning(f"🔒 Permission denied writing {name}, posting through API fallback")

        payload = {"id": doc_id, **fields} if doc_id else fields
        try:
            return await self.api_client.post_document(name, payload)
        except Exception as api_error:
            self.error_log.record(name, api_error, source=DataSource.API.value)
            raise

    async def delete_record(self, name: str, doc_id: str) -> None:
        self._require_privileged(name, "Delete")
        self._kind_for(name)
        try:
            if self.datastore is None:
                raise UnavailableError("No primary datastore configured", collection=name)
            await self.executor.execute(
                lambda: self.datastore.delete_document(name, doc_id), description=f"delete '{name}/{doc_id}'"
            )
            logger.info(f"🗑️ Deleted {name}/{doc_id}")
        except Exception as e:
            self.error_log.record(name, e, source=DataSource.FIRESTORE.value)
            raise
