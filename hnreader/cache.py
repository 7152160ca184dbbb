"""In-memory TTL cache shared by all requests of a ContentService."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from hnreader.cache_utils import atomic_write_json, read_json
from hnreader.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class _Miss:
    _instance: Optional[_Miss] = None

    def __new__(cls) -> _Miss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    payload: T
    created_at: float
    ttl: float

    def is_expired(self, now: float, ttl: Optional[float] = None) -> bool:
        return now - self.created_at >= (self.ttl if ttl is None else ttl)


class TTLCache(Generic[T]):
    """
    Expiring key-value store.

    Entries are immutable and replaced wholesale. Expiry is checked lazily on
    read against each entry's own TTL. Reads are plain dict lookups; writes
    are serialised so same-key writers leave the last write visible.
    """

    def __init__(
        self,
        default_ttl: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Union[T, _Miss]:
        entry = self._entries.get(key)
        if entry is None:
            return MISS
        if entry.is_expired(self._clock()):
            self._drop_if_same(key, entry)
            return MISS
        return entry.payload

    def entry(self, key: str) -> Optional[CacheEntry[T]]:
        """Return the raw entry, expired or not."""
        return self._entries.get(key)

    def put(self, key: str, value: T, ttl: Optional[float] = None) -> CacheEntry[T]:
        entry = CacheEntry(
            payload=value,
            created_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )
        with self._lock:
            self._entries[key] = entry
        return entry

    def is_expired(self, key: str, ttl: Optional[float] = None) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.is_expired(self._clock(), ttl)

    def age(self, key: str) -> Optional[float]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.created_at

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            doomed = [k for k, e in self._entries.items() if e.is_expired(now)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not MISS if isinstance(key, str) else False

    def __len__(self) -> int:
        return len(self._entries)

    def _drop_if_same(self, key: str, entry: CacheEntry[T]) -> None:
        # A fresher entry may have been written since the read
        with self._lock:
            if self._entries.get(key) is entry:
                del self._entries[key]

    def dump(self, path: Path, encode: Callable[[str, T], Any]) -> int:
        """Write unexpired entries to a JSON snapshot."""
        now = self._clock()
        rows = [
            {
                "key": key,
                "created_at": entry.created_at,
                "ttl": entry.ttl,
                "payload": encode(key, entry.payload),
            }
            for key, entry in list(self._entries.items())
            if not entry.is_expired(now)
        ]
        atomic_write_json(path, rows)
        return len(rows)

    def load(self, path: Path, decode: Callable[[str, Any], T]) -> int:
        """Restore unexpired entries from a snapshot written by dump()."""
        rows = read_json(path)
        if not isinstance(rows, list):
            return 0
        now = self._clock()
        loaded = 0
        for row in rows:
            try:
                entry = CacheEntry(
                    payload=decode(row["key"], row["payload"]),
                    created_at=float(row["created_at"]),
                    ttl=float(row["ttl"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("cache_snapshot_row_skipped", error=str(e))
                continue
            if entry.is_expired(now):
                continue
            with self._lock:
                self._entries[row["key"]] = entry
            loaded += 1
        return loaded
