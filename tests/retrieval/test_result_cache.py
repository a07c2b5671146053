import threading
import time
import unittest

from application.retrieval.response import CACHE_MISS, result_to_dict
from application.retrieval.result_cache import KeyedLocks, ResultCache
from domain.entities import (
    Chunk,
    ChunkMetadata,
    DiversityMetrics,
    RecallMetrics,
    RetrievalResult,
    RetrievalWarning,
    ScoreDistribution,
)
from domain.errors import CacheError
from infrastructure.cache import InMemoryCacheStore


def _result():
    return RetrievalResult(
        chunks=(
            Chunk(
                id="chunk-1",
                text="Body text of the first chunk",
                score=0.91,
                metadata=ChunkMetadata(type="article", license="CC-BY", content_id=1, tags=("wp",), word_count=6),
            ),
        ),
        total_retrieved=1,
        recall_metrics=RecallMetrics(
            recall_score=0.91,
            avg_score=0.91,
            score_distribution=ScoreDistribution(high=1, min_score=0.91, max_score=0.91),
        ),
        query_hash="a" * 64,
        processing_time_ms=12.5,
        warnings=(RetrievalWarning(type="insufficient_results", message="Only 1 chunk(s)"),),
        cache_status=CACHE_MISS,
        total_available=4,
        diversity_metrics=DiversityMetrics(1.0, 1.0, 0.0),
        filters_applied={"license_filter": True},
    )


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class FailingStore(InMemoryCacheStore):
    def get(self, key):
        raise CacheError("down")

    def set(self, key, value, ttl):
        raise CacheError("down")


class CountingPurgeStore(InMemoryCacheStore):
    def __init__(self, clock):
        super().__init__(clock=clock)
        self.purge_calls = 0

    def purge_expired(self):
        self.purge_calls += 1
        return 3


class BrokenPurgeStore(InMemoryCacheStore):
    def purge_expired(self):
        raise CacheError("locked")


class TestResultCache(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = InMemoryCacheStore(clock=self.clock)
        self.cache = ResultCache(self.store, ttl=60, clock=self.clock)

    def test_round_trip_preserves_result(self):
        self.cache.put("retrieval:k", _result())
        cached = self.cache.get("retrieval:k")
        self.assertEqual(cached, _result())
        self.assertEqual(self.cache.stats()["hits"], 1)
        self.assertEqual(self.cache.stats()["stores"], 1)

    def test_miss_and_ttl_expiry(self):
        self.assertIsNone(self.cache.get("retrieval:k"))
        self.cache.put("retrieval:k", _result())
        self.clock.now += 61
        self.assertIsNone(self.cache.get("retrieval:k"))
        stats = self.cache.stats()
        self.assertEqual(stats["misses"], 2)
        self.assertEqual(stats["total_requests"], 2)
        self.assertEqual(stats["hit_rate_percentage"], 0.0)

    def test_tampered_entry_is_discarded(self):
        self.cache.put("retrieval:k", _result())
        entry = self.store.get("retrieval:k")
        entry["result"]["total_retrieved"] = 99
        self.store.set("retrieval:k", entry, 60)

        self.assertIsNone(self.cache.get("retrieval:k"))
        self.assertIsNone(self.store.get("retrieval:k"))
        self.assertEqual(self.cache.stats()["invalid"], 1)

    def test_entries_older_than_max_age_are_rejected(self):
        cache = ResultCache(self.store, ttl=10 * 86400, max_age=86400, clock=self.clock)
        cache.put("retrieval:k", _result())
        self.clock.now += 86401
        self.assertIsNone(cache.get("retrieval:k"))

    def test_malformed_entries_are_rejected(self):
        for entry in ("garbage", {"result": "x", "stored_at": 1}, {"result": {}, "stored_at": self.clock.now}):
            with self.subTest(entry=entry):
                self.store.set("retrieval:k", entry, 60)
                self.assertIsNone(self.cache.get("retrieval:k"))

    def test_store_failures_degrade_to_miss(self):
        cache = ResultCache(FailingStore(), clock=self.clock)
        with self.assertLogs("application.retrieval.result_cache", level="WARNING"):
            self.assertIsNone(cache.get("retrieval:k"))
            cache.put("retrieval:k", _result())
        stats = cache.stats()
        self.assertEqual(stats["errors"], 2)
        self.assertEqual(stats["misses"], 1)
        self.assertEqual(stats["stores"], 0)

    def test_clear_empties_store_and_resets_stats(self):
        self.cache.put("retrieval:k", _result())
        self.cache.get("retrieval:k")
        self.cache.clear()
        self.assertEqual(len(self.store), 0)
        self.assertEqual(self.cache.stats()["hits"], 0)

    def test_store_is_purged_every_interval_writes(self):
        store = CountingPurgeStore(clock=self.clock)
        cache = ResultCache(store, ttl=60, purge_interval=2, clock=self.clock)
        for index in range(5):
            cache.put(f"retrieval:{index}", _result())
        self.assertEqual(store.purge_calls, 2)
        self.assertEqual(cache.stats()["purged"], 6)

    def test_purge_failures_are_logged(self):
        cache = ResultCache(BrokenPurgeStore(), clock=self.clock)
        with self.assertLogs("application.retrieval.result_cache", level="WARNING"):
            self.assertEqual(cache.purge_expired(), 0)
        self.assertEqual(cache.stats()["errors"], 1)

    def test_entry_layout(self):
        self.cache.put("retrieval:k", _result())
        entry = self.store.get("retrieval:k")
        self.assertEqual(set(entry), {"result", "stored_at", "checksum"})
        self.assertEqual(entry["result"], result_to_dict(_result()))
        self.assertEqual(entry["stored_at"], int(self.clock.now))


class TestKeyedLocks(unittest.TestCase):
    def test_same_key_is_serialized(self):
        locks = KeyedLocks()
        active = []
        overlaps = []

        def worker():
            with locks.hold("key"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                active.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(overlaps, [])
        self.assertEqual(locks._locks, {})

    def test_different_keys_do_not_block(self):
        locks = KeyedLocks()
        with locks.hold("a"):
            acquired = threading.Event()

            def other():
                with locks.hold("b"):
                    acquired.set()

            thread = threading.Thread(target=other)
            thread.start()
            self.assertTrue(acquired.wait(1.0))
            thread.join()


if __name__ == "__main__":
    unittest.main()
