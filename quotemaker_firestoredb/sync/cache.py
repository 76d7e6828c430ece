from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from ..utils.config import CACHE_TIMEOUT_SECONDS
from ..utils.logger import logger
from ..utils.time_now import TimeManager

Record = Mapping[str, Any]


@dataclass(frozen=True)
class CacheEntry:
    collection: str
    records: Tuple[Record, ...]
    fetched_at: float

    def as_list(self) -> list:
        return [dict(record) for record in self.records]


class CollectionCache:
    """
    Per-collection, time-boxed store of normalized records.

    Entries expire lazily: an entry older than ``timeout`` seconds is reported
    invalid but stays in place until the next ``put`` replaces it. The number of
    entries is bounded by the collection registry, so there is no eviction.
    """

    def __init__(self, timeout: float = CACHE_TIMEOUT_SECONDS, clock: Callable[[], float] = TimeManager.monotonic):
        self.timeout = timeout
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, name: str) -> Optional[CacheEntry]:
        return self._entries.get(name)

    def put(self, name: str, records: Iterable[Record]) -> CacheEntry:
        frozen = tuple(MappingProxyType(dict(record)) for record in records)
        entry = CacheEntry(collection=name, records=frozen, fetched_at=self._clock())
        self._entries[name] = entry
        logger.debug(f"🗃️ Cached {len(frozen)} records for '{name}'")
        return entry

    def is_valid(self, name: str) -> bool:
        entry = self._entries.get(name)
        if entry is None:
            return False
        return self._clock() - entry.fetched_at < self.timeout

    def age(self, name: str) -> Optional[float]:
        entry = self._entries.get(name)
        return None if entry is None else self._clock() - entry.fetched_at

    def invalidate(self, name: str) -> None:
        if self._entries.pop(name, None) is not None:
            logger.debug(f"🔄 Invalidated cache for '{name}'")

    def invalidate_all(self) -> None:
        self._entries.clear()
        logger.debug("🔄 Invalidated all collection caches")

    def names(self) -> Tuple[str, ...]:
        return tuple(self._entries.keys())
