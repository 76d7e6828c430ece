import asyncio
from typing import Any, Callable, Dict, List, Optional, Protocol

from async_lru import alru_cache
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ..utils.error_codes import ErrorCodes
from ..utils.logger import logger
from .client import FirestoreClient

AVAILABILITY_TTL_SECONDS = 30
PROBE_COLLECTION = "_warmup"

Unsubscribe = Callable[[], None]


class PrimaryDatastore(Protocol):
    async def read_collection(self, name: str) -> List[Dict[str, Any]]: ...

    async def write_document(self, collection: str, doc_id: Optional[str], fields: Dict[str, Any]) -> str: ...

    async def delete_document(self, collection: str, doc_id: str) -> None: ...

    async def find_documents(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]: ...

    async def is_available(self) -> bool: ...

    def invalidate_availability(self) -> None: ...

    def watch(self, collection: str, on_change: Callable[[List[Dict[str, Any]]], None]) -> Unsubscribe: ...


def _snapshot_to_record(doc) -> Dict[str, Any]:
    return {"id": doc.id, **(doc.to_dict() or {})}


class FirestoreDatastore:
    """Primary datastore backed by a Firestore ``AsyncClient``."""

    def __init__(self, client: Optional[firestore.AsyncClient] = None, sync_client: Optional[firestore.Client] = None):
        self.client = client if client is not None else FirestoreClient.shared()
        self._sync_client = sync_client
        # per instance, so one datastore's answer never leaks into another's
        self.is_available = alru_cache(maxsize=1, ttl=AVAILABILITY_TTL_SECONDS)(self._check_available)

    async def read_collection(self, name: str) -> List[Dict[str, Any]]:
        docs = await self.client.collection(name).get()
        records = [_snapshot_to_record(doc) for doc in docs if doc.exists]
        logger.debug(f"🔥 Read {len(records)} documents from '{name}'")
        return records

    async def write_document(self, collection: str, doc_id: Optional[str], fields: Dict[str, Any]) -> str:
        collection_ref = self.client.collection(collection)
        doc_ref = collection_ref.document(doc_id) if doc_id else collection_ref.document()
        await doc_ref.set(fields, merge=True)
        logger.debug(f"🔥 Wrote document {doc_ref.id} to '{collection}'")
        return doc_ref.id

    async def delete_document(self, collection: str, doc_id: str) -> None:
        await self.client.collection(collection).document(doc_id).delete()
        logger.debug(f"🔥 Deleted document {doc_id} from '{collection}'")

    async def find_documents(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        docs = await self.client.collection(collection).where(filter=FieldFilter(field, "==", value)).get()
        return [_snapshot_to_record(doc) for doc in docs if doc.exists]

    async def _check_available(self) -> bool:
        """
        Whether Firestore answers at all. A permission-denied answer still counts as
        reachable: callers decide how to fall back on denial.
        """
        try:
            await self.client.collection(PROBE_COLLECTION).limit(1).get()
            return True
        except Exception as e:
            if ErrorCodes.is_permission_error(e):
                return True
            logger.warning(f"⚠️ Firestore connectivity probe failed: {e}")
            return False

    def invalidate_availability(self) -> None:
        self.is_available.cache_clear()

    def watch(self, collection: str, on_change: Callable[[List[Dict[str, Any]]], None]) -> Unsubscribe:
        """
        Subscribe to collection snapshots. Firestore calls back on its own thread, so
        the records are handed to ``on_change`` on the caller's event loop.
        """
        sync_client = self._sync_client or FirestoreClient.shared_sync()
        if sync_client is None:
            raise RuntimeError(f"Realtime listeners are not available for '{collection}'")

        loop = asyncio.get_running_loop()

        def _on_snapshot(docs, changes, read_time):
            records = [_snapshot_to_record(doc) for doc in docs if doc.exists]
            loop.call_soon_threadsafe(on_change, records)

        watch = sync_client.collection(collection).on_snapshot(_on_snapshot)
        logger.info(f"👀 Watching Firestore collection '{collection}'")
        return watch.unsubscribe
