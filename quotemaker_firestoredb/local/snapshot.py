import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..schemas.keys import StorageKeys
from ..utils.exceptions import SnapshotUnavailableError
from ..utils.logger import logger
from ..utils.time_now import TimeManager


def _to_plain(record: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: list(value) if isinstance(value, tuple) else value for key, value in record.items()}


class LocalSnapshotStore:
    """Per-collection snapshots of normalized records kept in a local key/value store."""

    def __init__(self, kv_store, prefix: str = StorageKeys.snapshotPrefix):
        self.kv_store = kv_store
        self.prefix = prefix

    def _storage_key(self, collection: str) -> str:
        return f"{self.prefix}{collection}"

    def read_collection(self, collection: str) -> List[Dict[str, Any]]:
        """Records stored for ``collection``; an empty list when nothing was saved yet."""
        raw = self.kv_store.get(self._storage_key(collection))
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SnapshotUnavailableError(f"Snapshot for {collection} is unreadable: {e}", collection=collection) from e

        if isinstance(data, dict):
            # older snapshots were keyed by document id
            data = [{"id": doc_id, **fields} for doc_id, fields in data.items() if isinstance(fields, dict)]
        if not isinstance(data, list):
            raise SnapshotUnavailableError(f"Snapshot for {collection} has an invalid shape", collection=collection)
        return [record for record in data if isinstance(record, dict)]

    def save_collection(self, collection: str, records: Sequence[Mapping[str, Any]]) -> None:
        payload = [_to_plain(record) for record in records]
        self.kv_store.set(self._storage_key(collection), json.dumps(payload, ensure_ascii=False, default=str))
        self._update_metadata(collection, len(payload))
        logger.debug(f"📦 Saved {len(payload)} records to local snapshot '{collection}'")

    def clear_collection(self, collection: str) -> None:
        self.kv_store.remove(self._storage_key(collection))
        metadata = self.get_metadata()
        if metadata.pop(collection, None) is not None:
            self.kv_store.set(StorageKeys.snapshotMetadataKey, json.dumps(metadata))

    def collection_names(self) -> List[str]:
        return [key[len(self.prefix):] for key in self.kv_store.keys() if key.startswith(self.prefix)]

    def get_metadata(self, collection: Optional[str] = None) -> Dict[str, Any]:
        raw = self.kv_store.get(StorageKeys.snapshotMetadataKey)
        try:
            metadata = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            logger.warning("⚠️ Snapshot metadata is unreadable, starting fresh")
            metadata = {}
        if collection is not None:
            return metadata.get(collection, {})
        return metadata

    def _update_metadata(self, collection: str, count: int) -> None:
        metadata = self.get_metadata()
        metadata[collection] = {"lastUpdated": TimeManager.get_time_now_isoformat(), "count": count}
        self.kv_store.set(StorageKeys.snapshotMetadataKey, json.dumps(metadata))

    def get_statistics(self) -> Dict[str, Dict[str, Any]]:
        return {name: {"count": len(self.read_collection(name))} for name in self.collection_names()}
