from infrastructure.cache.in_memory_cache_store import InMemoryCacheStore
from infrastructure.cache.sqlite_cache_store import SqliteCacheStore

__all__ = [
    "InMemoryCacheStore",
    "SqliteCacheStore",
]
