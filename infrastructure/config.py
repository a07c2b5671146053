"""Dependency wiring for the ContextRetrieval application."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Mapping

from application.retrieval.result_cache import DEFAULT_TTL, ResultCache
from application.retrieval.settings import FilterOptions, QualitySettings, RECALL_THRESHOLDS
from domain.entities import FieldBoost, Namespace
from domain.errors import CacheError, ConfigurationError
from domain.interfaces import CacheStore, TextExtractor, VectorSearchClient
from infrastructure.cache.in_memory_cache_store import InMemoryCacheStore
from infrastructure.cache.sqlite_cache_store import SqliteCacheStore
from infrastructure.search.query_builder import BOOST_TABLE
from infrastructure.search.smart_search_client import SmartSearchClient, SmartSearchConfig
from infrastructure.text_extraction.html_extractor import HtmlExtractor

logger = logging.getLogger(__name__)

CacheBackendName = Literal["memory", "sqlite"]

ENV_PREFIX = "CONTEXTRETRIEVAL_"


@dataclass(slots=True)
class Container:
    """Simple container bundling concrete infrastructure implementations."""

    search_client: VectorSearchClient
    cache_store: CacheStore
    result_cache: ResultCache
    extractor: TextExtractor
    quality_settings: QualitySettings
    filter_options: FilterOptions
    boost_table: Mapping[Namespace, tuple[FieldBoost, ...]]
    timeout_seconds: float


@dataclass(slots=True)
class AppConfig:
    """Explicit configuration; nothing below reads ambient settings after construction."""

    api_url: str = ""
    access_token: str = ""
    timeout_seconds: float = 30.0
    user_agent: str = "ContextRetrieval/1.0"
    cache_backend: CacheBackendName = "memory"
    cache_path: str = "contextretrieval-cache.db"
    cache_ttl: int = DEFAULT_TTL
    quality: QualitySettings = field(default_factory=QualitySettings)
    filter_options: FilterOptions = field(default_factory=FilterOptions)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        env = os.environ if environ is None else environ

        def read(name: str, default: str = "") -> str:
            return env.get(f"{ENV_PREFIX}{name}", default).strip()

        strictness = read("STRICTNESS", "balanced").lower()
        if strictness not in RECALL_THRESHOLDS:
            raise ConfigurationError(f"Unknown strictness '{strictness}'")
        backend = read("CACHE_BACKEND", "memory").lower()
        if backend not in _CACHE_FACTORIES:
            raise ConfigurationError(f"Unknown cache backend '{backend}'")

        try:
            timeout_seconds = float(read("TIMEOUT_SECONDS", "30"))
            cache_ttl = int(read("CACHE_TTL", str(DEFAULT_TTL)))
            min_word_count = int(read("MIN_WORD_COUNT", "20"))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        return cls(
            api_url=read("API_URL"),
            access_token=read("ACCESS_TOKEN"),
            timeout_seconds=timeout_seconds,
            cache_backend=backend,  # type: ignore[arg-type]
            cache_path=read("CACHE_PATH", "contextretrieval-cache.db"),
            cache_ttl=cache_ttl,
            quality=QualitySettings(strictness=strictness, min_word_count=min_word_count),  # type: ignore[arg-type]
        )


_CACHE_FACTORIES: dict[CacheBackendName, Callable[[AppConfig], CacheStore]] = {
    "memory": lambda cfg: InMemoryCacheStore(),
    "sqlite": lambda cfg: SqliteCacheStore(db_path=Path(cfg.cache_path)),
}


def build_default_container(
    config: AppConfig | None = None,
    *,
    search_client: VectorSearchClient | None = None,
) -> Container:
    """Instantiate the default infrastructure stack."""

    cfg = config or AppConfig.from_env()
    try:
        factory = _CACHE_FACTORIES[cfg.cache_backend]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown cache backend '{cfg.cache_backend}'") from exc
    try:
        cache_store = factory(cfg)
    except CacheError:
        logger.warning(
            "Cache backend '%s' is unavailable; falling back to the in-memory cache.",
            cfg.cache_backend,
            exc_info=True,
        )
        cache_store = InMemoryCacheStore()
    client = search_client or SmartSearchClient(
        SmartSearchConfig(
            api_url=cfg.api_url,
            access_token=cfg.access_token,
            timeout_seconds=cfg.timeout_seconds,
            user_agent=cfg.user_agent,
        )
    )

    return Container(
        search_client=client,
        cache_store=cache_store,
        result_cache=ResultCache(cache_store, ttl=cfg.cache_ttl),
        extractor=HtmlExtractor(),
        quality_settings=cfg.quality,
        filter_options=cfg.filter_options,
        boost_table=BOOST_TABLE,
        timeout_seconds=cfg.timeout_seconds,
    )


__all__ = ["AppConfig", "Container", "build_default_container", "ENV_PREFIX"]
