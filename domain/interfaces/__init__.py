"""Abstract interfaces for the ContextRetrieval system."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from domain.entities import SearchResponse, SimilarityQuery


class TextExtractor(ABC):
    """Extracts plain text from provider fields that may carry markup."""

    @abstractmethod
    def extract(self, source: bytes | str) -> str:
        """Return the textual representation of a source."""


class VectorSearchClient(ABC):
    """Executes similarity queries against a remote vector search service."""

    @abstractmethod
    def search(self, query: SimilarityQuery, *, timeout: float | None = None) -> SearchResponse:
        """Return raw provider documents or raise ``UpstreamError``."""


class CacheStore(ABC):
    """Key-value store with per-entry TTL."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value or ``None`` when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> None:
        """Store a JSON-compatible value for ``ttl`` seconds."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a single entry if present."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        return 0


__all__ = [
    "TextExtractor",
    "VectorSearchClient",
    "CacheStore",
]
