import json
import os
from threading import Lock
from typing import Dict, List, Optional

from ..utils.exceptions import SnapshotUnavailableError
from ..utils.logger import logger


class MemoryKeyValueStore:
    """String key/value store kept in process memory."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> List[str]:
        return list(self._data.keys())


class JsonFileKeyValueStore:
    """
    String key/value store persisted as a single JSON object on disk.

    Every mutation rewrites the file through a temporary file and ``os.replace``
    so a crash never leaves a half-written store behind. A corrupt file is moved
    aside and the store starts empty.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = Lock()
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data

        if not os.path.exists(self.path):
            self._data = {}
            return self._data

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            corrupt_path = f"{self.path}.corrupt"
            logger.error(f"❌ Local store {self.path} is corrupt ({e}), moving it to {corrupt_path}")
            try:
                os.replace(self.path, corrupt_path)
            except OSError as move_error:
                raise SnapshotUnavailableError(f"Cannot move corrupt local store aside: {move_error}") from move_error
            loaded = {}
        except OSError as e:
            raise SnapshotUnavailableError(f"Cannot read local store {self.path}: {e}") from e

        if not isinstance(loaded, dict):
            logger.warning(f"⚠️ Local store {self.path} does not hold an object, ignoring its contents")
            loaded = {}
        self._data = {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in loaded.items()}
        return self._data

    def _flush(self) -> None:
        directory = os.path.dirname(self.path)
        tmp_path = f"{self.path}.tmp"
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise SnapshotUnavailableError(f"Cannot write local store {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._load()[key] = value
            self._flush()

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._flush()

    def clear(self) -> None:
        with self._lock:
            self._load().clear()
            self._flush()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load().keys())
