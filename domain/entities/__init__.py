"""Domain entities for the ContextRetrieval system."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class Namespace(str, Enum):
    """Corpus partitions exposed by the vector search provider."""

    CONTENT = "content"
    PRODUCTS = "products"
    DOCS = "docs"
    KNOWLEDGE = "knowledge"


DEFAULT_NAMESPACE = Namespace.CONTENT


class License(str, Enum):
    """Closed set of license tags a caller may filter on."""

    CC_BY = "CC-BY"
    CC_BY_SA = "CC-BY-SA"
    CC_BY_NC = "CC-BY-NC"
    PUBLIC_DOMAIN = "public-domain"
    FAIR_USE = "fair-use"
    COMMERCIAL = "commercial"


UNKNOWN_LICENSE = "unknown"


@dataclass(slots=True, frozen=True)
class DateRange:
    """Inclusive publication date window. Either side may be open."""

    start: date | None = None
    end: date | None = None


@dataclass(slots=True, frozen=True)
class FilterCriteria:
    """Sanitized filter dimensions applied upstream and during quality filtering."""

    post_types: tuple[str, ...] = ()
    post_statuses: tuple[str, ...] = ()
    licenses: tuple[str, ...] = ()
    language: str | None = None
    date_range: DateRange | None = None
    authors: tuple[int, ...] = ()
    exclude_ids: tuple[int, ...] = ()
    min_word_count: int | None = None

    def active_dimensions(self) -> list[str]:
        """Return the names of the dimensions that carry a value."""
        active: list[str] = []
        if self.post_types:
            active.append("post_type")
        if self.post_statuses:
            active.append("post_status")
        if self.licenses:
            active.append("license")
        if self.language:
            active.append("language")
        if self.date_range is not None:
            active.append("date_range")
        if self.authors:
            active.append("author")
        if self.exclude_ids:
            active.append("exclude_ids")
        if self.min_word_count is not None:
            active.append("min_word_count")
        return active

    def is_empty(self) -> bool:
        return not self.active_dimensions()


@dataclass(slots=True, frozen=True)
class RetrievalRequest:
    """A validated, bounds-checked request for grounding context."""

    section_id: str
    query: str
    namespaces: tuple[Namespace, ...] = (DEFAULT_NAMESPACE,)
    k: int = 10
    min_score: float = 0.5
    filters: FilterCriteria = field(default_factory=FilterCriteria)


@dataclass(slots=True, frozen=True)
class FieldBoost:
    """Relative weight of one indexed field in a similarity query."""

    name: str
    boost: float


@dataclass(slots=True, frozen=True)
class SimilarityQuery:
    """Provider-ready query derived from a retrieval request."""

    text: str
    fields: tuple[FieldBoost, ...]
    namespaces: tuple[str, ...]
    limit: int
    offset: int = 0
    min_score: float = 0.0
    filter_expression: str | None = None


@dataclass(slots=True, frozen=True)
class ProviderDocument:
    """A raw document as returned by the vector search provider."""

    id: str | None
    score: Any
    data: Any
    metadata: Any = None


@dataclass(slots=True, frozen=True)
class SearchResponse:
    total: int
    documents: tuple[ProviderDocument, ...] = ()


@dataclass(slots=True, frozen=True)
class ChunkMetadata:
    """Provenance metadata attached to every chunk."""

    source_url: str | None = None
    type: str = "unknown"
    date: str | None = None
    license: str = UNKNOWN_LICENSE
    language: str = "en"
    content_id: int | None = None
    author: str | None = None
    author_id: int | None = None
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    word_count: int = 0
    excerpt: str = ""


@dataclass(slots=True, frozen=True)
class Chunk:
    """A text passage surfaced to the content generator."""

    id: str
    text: str
    score: float
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)


@dataclass(slots=True, frozen=True)
class ScoreDistribution:
    high: int = 0
    medium: int = 0
    low: int = 0
    min_score: float = 0.0
    max_score: float = 0.0


@dataclass(slots=True, frozen=True)
class RecallMetrics:
    recall_score: float = 0.0
    avg_score: float = 0.0
    score_distribution: ScoreDistribution = field(default_factory=ScoreDistribution)


@dataclass(slots=True, frozen=True)
class DiversityMetrics:
    content_type_diversity: float = 0.0
    source_diversity: float = 0.0
    temporal_diversity: float = 0.0


@dataclass(slots=True, frozen=True)
class RetrievalWarning:
    """Structured diagnostic attached to an otherwise successful result."""

    type: str
    message: str
    severity: str = "warning"


@dataclass(slots=True, frozen=True)
class RetrievalResult:
    """Final result envelope returned for a retrieval request."""

    chunks: tuple[Chunk, ...]
    total_retrieved: int
    recall_metrics: RecallMetrics
    query_hash: str
    processing_time_ms: float
    warnings: tuple[RetrievalWarning, ...] = ()
    cache_status: str = "miss"
    total_available: int = 0
    diversity_metrics: DiversityMetrics = field(default_factory=DiversityMetrics)
    filters_applied: dict[str, bool] = field(default_factory=dict)


__all__ = [
    "Namespace",
    "DEFAULT_NAMESPACE",
    "License",
    "UNKNOWN_LICENSE",
    "DateRange",
    "FilterCriteria",
    "RetrievalRequest",
    "FieldBoost",
    "SimilarityQuery",
    "ProviderDocument",
    "SearchResponse",
    "ChunkMetadata",
    "Chunk",
    "ScoreDistribution",
    "RecallMetrics",
    "DiversityMetrics",
    "RetrievalWarning",
    "RetrievalResult",
]
