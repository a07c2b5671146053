"""Read-through cache of full retrieval results on top of a ``CacheStore``."""
from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

from application.retrieval.response import result_from_dict, result_to_dict
from domain.entities import RetrievalResult
from domain.errors import CacheError
from domain.interfaces import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600
MAX_ENTRY_AGE = 86400
PURGE_INTERVAL = 100


@dataclass(slots=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    stores: int = 0
    invalid: int = 0
    errors: int = 0
    purged: int = 0

    def to_dict(self) -> dict[str, float | int]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stores": self.stores,
            "invalid": self.invalid,
            "errors": self.errors,
            "purged": self.purged,
            "total_requests": total,
            "hit_rate_percentage": round(self.hits / total * 100, 2) if total else 0.0,
        }


class KeyedLocks:
    """One lock per key so concurrent misses on a key run the upstream call once."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list[Any]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        lock: threading.Lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)


class ResultCache:
    """Stores serialized results with a checksum and treats every store failure as a miss."""

    def __init__(
        self,
        store: CacheStore,
        *,
        ttl: int = DEFAULT_TTL,
        max_age: int = MAX_ENTRY_AGE,
        purge_interval: int = PURGE_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._max_age = max_age
        self._purge_interval = purge_interval
        self._writes = 0
        self._clock = clock
        self._stats = CacheStats()
        self._stats_lock = threading.Lock()
        self._locks = KeyedLocks()

    @property
    def ttl(self) -> int:
        return self._ttl

    def get(self, key: str) -> RetrievalResult | None:
        try:
            entry = self._store.get(key)
        except CacheError:
            logger.warning("Cache read failed for %s; continuing without cache.", _short(key), exc_info=True)
            self._count("errors")
            self._count("misses")
            return None

        if entry is None:
            logger.debug("Cache miss for %s", _short(key))
            self._count("misses")
            return None

        result = self._decode(entry)
        if result is None:
            logger.debug("Discarding invalid cache entry %s", _short(key))
            self._count("invalid")
            self._count("misses")
            self._discard(key)
            return None

        logger.debug("Cache hit for %s", _short(key))
        self._count("hits")
        return result

    def put(self, key: str, result: RetrievalResult) -> None:
        payload = result_to_dict(result)
        entry = {
            "result": payload,
            "stored_at": int(self._clock()),
            "checksum": _checksum(payload),
        }
        try:
            self._store.set(key, entry, self._ttl)
        except CacheError:
            logger.warning("Cache write failed for %s; result not cached.", _short(key), exc_info=True)
            self._count("errors")
            return
        self._count("stores")
        with self._stats_lock:
            self._writes += 1
            due = self._purge_interval > 0 and self._writes % self._purge_interval == 0
        if due:
            self.purge_expired()

    def purge_expired(self) -> int:
        """Ask the store to drop expired entries; failures are logged and reported as zero."""
        try:
            removed = self._store.purge_expired()
        except CacheError:
            logger.warning("Cache purge failed", exc_info=True)
            self._count("errors")
            return 0
        if removed:
            logger.debug("Purged %d expired cache entries", removed)
            with self._stats_lock:
                self._stats.purged += removed
        return removed

    @contextmanager
    def single_flight(self, key: str) -> Iterator[None]:
        with self._locks.hold(key):
            yield

    def clear(self) -> None:
        self._store.clear()
        with self._stats_lock:
            self._stats = CacheStats()

    def stats(self) -> dict[str, float | int]:
        with self._stats_lock:
            return self._stats.to_dict()

    def _decode(self, entry: Any) -> RetrievalResult | None:
        if not isinstance(entry, Mapping):
            return None
        payload = entry.get("result")
        stored_at = entry.get("stored_at")
        if not isinstance(payload, Mapping) or not isinstance(stored_at, (int, float)):
            return None
        if self._clock() - stored_at > self._max_age:
            return None
        if entry.get("checksum") != _checksum(payload):
            return None
        try:
            return result_from_dict(payload)
        except (KeyError, TypeError, ValueError):
            return None

    def _discard(self, key: str) -> None:
        try:
            self._store.delete(key)
        except CacheError:
            logger.warning("Could not delete invalid cache entry %s", _short(key), exc_info=True)
            self._count("errors")

    def _count(self, name: str) -> None:
        with self._stats_lock:
            setattr(self._stats, name, getattr(self._stats, name) + 1)


def _checksum(payload: Mapping[str, Any]) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _short(key: str) -> str:
    return key if len(key) <= 24 else f"{key[:24]}..."


__all__ = ["CacheStats", "KeyedLocks", "ResultCache", "DEFAULT_TTL", "MAX_ENTRY_AGE", "PURGE_INTERVAL"]
