import asyncio
import hashlib
import json
import uuid
from typing import Any, Dict, List, Optional

from ..schemas.collection_names import DatabaseCollectionNames
from ..schemas.keys import StorageKeys
from ..schemas.sync_status import StorageItem
from ..utils.error_codes import ErrorCodes
from ..utils.logger import logger
from ..utils.time_now import TimeManager

LOCAL_PREFIX = "storage:"


class FirestoreStorage:
    """
    Key/value storage (``setItem``/``getItem``/``removeItem``/``clear``/``getAllKeys``)
    kept in the Firestore ``storage`` collection.

    Writes go to Firestore first and drop down to the local store when Firestore
    denies them; the call still succeeds. Reads go memory → Firestore → local
    store, and a value found only locally is copied up to Firestore once it is
    reachable again.
    """

    def __init__(
        self,
        datastore,
        local_store,
        collection: str = DatabaseCollectionNames.STORAGE.value,
        device_id: Optional[str] = None,
        local_prefix: str = LOCAL_PREFIX,
    ):
        self.datastore = datastore
        self.local_store = local_store
        self.collection = collection
        self.local_prefix = local_prefix
        self._memory: Dict[str, StorageItem] = {}
        # last pending action per key, replayed once Firestore is back
        self._pending: Dict[str, str] = {}
        self._pending_reads: Dict[str, asyncio.Task] = {}
        self._device_id = device_id
        self.session_id = f"session_{TimeManager.get_epoch_millis()}_{uuid.uuid4().hex[:9]}"

    # ------------------------------------------------------------------ #
    #  ─── Helpers ─────────────── #
    # ------------------------------------------------------------------ #
    @property
    def device_id(self) -> str:
        if self._device_id is None:
            stored = self.local_store.get(StorageKeys.deviceIdStorageKey)
            if not stored:
                stored = f"device_{uuid.uuid4().hex[:9]}"
                self.local_store.set(StorageKeys.deviceIdStorageKey, stored)
            self._device_id = stored
        return self._device_id

    @property
    def pending_operations(self) -> List[Dict[str, Any]]:
        return [{"action": action, "key": key} for key, action in self._pending.items()]

    def _enqueue(self, action: str, key: str) -> None:
        if self.datastore is None:
            return
        # a newer action supersedes whatever was pending for the key
        self._pending.pop(key, None)
        self._pending[key] = action

    def _doc_id(self, key: str) -> str:
        return f"{self.device_id}_{hashlib.sha256(key.encode('utf-8')).hexdigest()[:32]}"

    @staticmethod
    def _serialize(value: Any) -> tuple:
        if isinstance(value, str):
            return value, "string"
        if isinstance(value, bool):
            return json.dumps(value), "boolean"
        if isinstance(value, (int, float)):
            return json.dumps(value), "number"
        return json.dumps(value, default=str), "object"

    @staticmethod
    def _parse(item: StorageItem) -> Any:
        if item.dataType == "string":
            return item.value
        try:
            return json.loads(item.value)
        except (TypeError, ValueError):
            return item.value

    def _build_item(self, key: str, value: Any, migrated: bool = False) -> StorageItem:
        serialized, data_type = self._serialize(value)
        return StorageItem(
            key=key,
            value=serialized,
            dataType=data_type,
            timestamp=TimeManager.get_epoch_millis(),
            deviceId=self.device_id,
            sessionId=self.session_id,
            migrated=migrated,
        )

    async def _primary_reachable(self) -> bool:
        if self.datastore is None:
            return False
        try:
            return await self.datastore.is_available()
        except Exception as e:
            logger.warning(f"⚠️ Storage could not probe Firestore: {e}")
            return False

    def _write_local(self, item: StorageItem) -> None:
        envelope = json.dumps({"value": item.value, "dataType": item.dataType, "timestamp": item.timestamp})
        self.local_store.set(f"{self.local_prefix}{item.key}", envelope)

    def _read_local(self, key: str) -> Optional[StorageItem]:
        raw = self.local_store.get(f"{self.local_prefix}{key}")
        if raw is None:
            return None
        try:
            envelope = json.loads(raw)
            return StorageItem(
                key=key,
                value=envelope["value"],
                dataType=envelope.get("dataType", "string"),
                timestamp=envelope.get("timestamp", 0),
                deviceId=self.device_id,
            )
        except (ValueError, KeyError, TypeError):
            # plain string written by something other than this shim
            return StorageItem(key=key, value=raw, dataType="string", deviceId=self.device_id)

    def _local_keys(self) -> List[str]:
        return [key[len(self.local_prefix):] for key in self.local_store.keys() if key.startswith(self.local_prefix)]

    async def _primary_items(self, key: Optional[str] = None) -> List[Dict[str, Any]]:
        if key is None:
            docs = await self.datastore.read_collection(self.collection)
        else:
            docs = await self.datastore.find_documents(self.collection, StorageKeys.key, key)
        return [doc for doc in docs if doc.get(StorageKeys.deviceId) in (None, self.device_id)]

    async def _write_primary(self, item: StorageItem) -> None:
        await self.datastore.write_document(self.collection, self._doc_id(item.key), item.to_firestore())

    # ------------------------------------------------------------------ #
    #  ─── Key/value interface ─────────────── #
    # ------------------------------------------------------------------ #
    async def setItem(self, key: str, value: Any) -> bool:
        item = self._build_item(key, value)
        self._memory[key] = item

        if await self._primary_reachable():
            try:
                await self._write_primary(item)
                logger.debug(f"🔥 Storage saved to Firestore: {key}")
                return True
            except Exception as e:
                if ErrorCodes.is_permission_error(e):
                    logger.warning(f"🔒 Firestore permission denied for {key}, falling back to local storage")
                    self._write_local(item)
                    return True
                logger.warning(f"⚠️ Firestore write failed for {key} ({ErrorCodes.get_error_code(e)}), queued for sync")
        self._write_local(item)
        self._enqueue("set", key)
        logger.debug(f"📦 Storage saved locally: {key}")
        return True

    async def getItem(self, key: str) -> Any:
        if key in self._memory:
            return self._parse(self._memory[key])

        task = self._pending_reads.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._read_through(key))
            self._pending_reads[key] = task
            task.add_done_callback(lambda done, k=key: self._forget_read(k, done))
        item = await asyncio.shield(task)
        return None if item is None else self._parse(item)

    def _forget_read(self, key: str, task: asyncio.Task) -> None:
        if self._pending_reads.get(key) is task:
            del self._pending_reads[key]

    async def _read_through(self, key: str) -> Optional[StorageItem]:
        reachable = await self._primary_reachable()
        denied = False

        if reachable:
            try:
                docs = await self._primary_items(key)
                if docs:
                    latest = max(docs, key=lambda doc: doc.get(StorageKeys.timestamp, 0))
                    item = StorageItem(**{k: v for k, v in latest.items() if k in StorageItem.model_fields})
                    self._memory[key] = item
                    return item
            except Exception as e:
                denied = ErrorCodes.is_permission_error(e)
                log = logger.warning if denied else logger.error
                log(f"⚠️ Firestore read failed for {key} ({ErrorCodes.get_error_code(e)}), using local storage")

        item = self._read_local(key)
        if item is None:
            return None
        self._memory[key] = item

        if reachable and not denied:
            await self._migrate(item)
        return item

    async def _migrate(self, item: StorageItem) -> bool:
        migrated = item.model_copy(update={"migrated": True, "sessionId": self.session_id})
        try:
            await self._write_primary(migrated)
            logger.info(f"⬆️ Migrated {item.key} from local storage to Firestore")
            return True
        except Exception as e:
            logger.warning(f"⚠️ Could not migrate {item.key} to Firestore: {e}")
            return False

    async def removeItem(self, key: str) -> bool:
        self._memory.pop(key, None)

        if await self._primary_reachable():
            try:
                for doc in await self._primary_items(key):
                    await self.datastore.delete_document(self.collection, doc["id"])
            except Exception as e:
                if not ErrorCodes.is_permission_error(e):
                    self._enqueue("remove", key)
                logger.warning(f"⚠️ Firestore delete failed for {key}: {e}")
        else:
            self._enqueue("remove", key)

        self.local_store.remove(f"{self.local_prefix}{key}")
        return True

    async def clear(self) -> bool:
        self._memory.clear()
        self._pending.clear()

        if await self._primary_reachable():
            try:
                for doc in await self._primary_items():
                    await self.datastore.delete_document(self.collection, doc["id"])
                logger.info("🧹 Firestore storage cleared")
            except Exception as e:
                logger.warning(f"⚠️ Could not clear Firestore storage: {e}")

        for key in self._local_keys():
            self.local_store.remove(f"{self.local_prefix}{key}")
        return True

    async def getAllKeys(self) -> List[str]:
        keys = dict.fromkeys(self._memory.keys())

        if await self._primary_reachable():
            try:
                for doc in await self._primary_items():
                    if doc.get(StorageKeys.key):
                        keys.setdefault(doc[StorageKeys.key])
            except Exception as e:
                logger.warning(f"⚠️ Could not list Firestore storage keys: {e}")

        for key in self._local_keys():
            keys.setdefault(key)
        return list(keys)

    # ------------------------------------------------------------------ #
    #  ─── Reconciliation ─────────────── #
    # ------------------------------------------------------------------ #
    async def sync_queued_operations(self) -> int:
        """Replay writes and deletes queued while Firestore was unreachable. Returns how many succeeded."""
        if not self._pending or not await self._primary_reachable():
            return 0

        operations, self._pending = self._pending, {}
        synced = 0
        for key, action in operations.items():
            try:
                if action == "set":
                    item = self._memory.get(key) or self._read_local(key)
                    if item is not None:
                        await self._write_primary(item)
                else:
                    for doc in await self._primary_items(key):
                        await self.datastore.delete_document(self.collection, doc["id"])
                synced += 1
            except Exception as e:
                logger.error(f"❌ Error syncing queued {action} for {key}: {e}")
                if not ErrorCodes.is_permission_error(e):
                    self._pending.setdefault(key, action)

        logger.info(f"✅ Synced {synced}/{len(operations)} queued storage operations")
        return synced

    async def migrate_local_to_primary(self) -> int:
        if not await self._primary_reachable():
            return 0
        primary_keys = {doc.get(StorageKeys.key) for doc in await self._primary_items()}
        migrated = 0
        for key in self._local_keys():
            if key in primary_keys:
                continue
            item = self._read_local(key)
            if item is not None and await self._migrate(item):
                migrated += 1
        return migrated

    async def validate_consistency(self) -> Dict[str, Any]:
        docs = await self._primary_items()
        primary = {doc.get(StorageKeys.key): doc for doc in docs if doc.get(StorageKeys.key)}
        conflicts = [
            {"key": key, "cache": item.value, "firestore": primary[key].get(StorageKeys.value)}
            for key, item in self._memory.items()
            if key in primary and primary[key].get(StorageKeys.value) != item.value
        ]
        return {
            "missingInFirestore": [key for key in self._memory if key not in primary],
            "missingInCache": [key for key in primary if key not in self._memory],
            "conflicts": conflicts,
        }
