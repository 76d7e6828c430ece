from collections import deque
from typing import Deque, Dict, List, Optional

from ..schemas.sync_status import SyncErrorRecord
from ..utils.config import ERROR_LOG_SIZE
from ..utils.error_codes import ErrorCodes
from ..utils.time_now import TimeManager


class SyncErrorLog:
    """Rolling log of the most recent failures, newest last. Diagnostic only."""

    def __init__(self, max_size: int = ERROR_LOG_SIZE):
        self._entries: Deque[SyncErrorRecord] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._entries.maxlen

    def record(self, collection: str, error: BaseException, source: Optional[str] = None) -> SyncErrorRecord:
        entry = SyncErrorRecord(
            collection=collection,
            timestamp=TimeManager.get_time_now(),
            code=ErrorCodes.get_error_code(error),
            message=str(error),
            source=source,
        )
        self._entries.append(entry)
        return entry

    def entries(self, collection: Optional[str] = None) -> List[SyncErrorRecord]:
        if collection is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.collection == collection]

    def recent(self, limit: int = 10) -> List[SyncErrorRecord]:
        return list(self._entries)[-limit:]

    def last_error(self, collection: str) -> Optional[SyncErrorRecord]:
        for entry in reversed(self._entries):
            if entry.collection == collection:
                return entry
        return None

    def stats(self) -> Dict[str, Dict[str, int]]:
        by_code: Dict[str, int] = {}
        by_collection: Dict[str, int] = {}
        for entry in self._entries:
            by_code[entry.code] = by_code.get(entry.code, 0) + 1
            by_collection[entry.collection] = by_collection.get(entry.collection, 0) + 1
        return {"byCode": by_code, "byCollection": by_collection}

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
