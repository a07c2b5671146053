"""Assembly and (de)serialization of the retrieval result envelope."""
from __future__ import annotations

import json
from dataclasses import replace
from typing import Any, Mapping, Sequence

from domain.entities import (
    Chunk,
    ChunkMetadata,
    DiversityMetrics,
    Namespace,
    RecallMetrics,
    RetrievalRequest,
    RetrievalResult,
    RetrievalWarning,
    ScoreDistribution,
)

CACHE_HIT = "hit"
CACHE_MISS = "miss"


def build_result(
    request: RetrievalRequest,
    chunks: Sequence[Chunk],
    *,
    query_hash: str,
    metrics: RecallMetrics,
    diversity: DiversityMetrics,
    warnings: Sequence[RetrievalWarning],
    total_available: int,
    elapsed_ms: float,
) -> RetrievalResult:
    """Stamp the final envelope for a freshly computed (cache-miss) retrieval."""

    return RetrievalResult(
        chunks=tuple(chunks),
        total_retrieved=len(chunks),
        recall_metrics=metrics,
        query_hash=query_hash,
        processing_time_ms=round(elapsed_ms, 2),
        warnings=tuple(warnings),
        cache_status=CACHE_MISS,
        total_available=max(total_available, len(chunks)),
        diversity_metrics=diversity,
        filters_applied=filters_applied(request),
    )


def filters_applied(request: RetrievalRequest) -> dict[str, bool]:
    active = set(request.filters.active_dimensions())
    flags = {
        f"{name}_filter": name in active
        for name in ("post_type", "post_status", "date_range", "language", "license", "author", "exclude_ids")
    }
    flags["min_score_filter"] = request.min_score > 0.0
    flags["namespace_filter"] = len(request.namespaces) < len(Namespace)
    return flags


def mark_cache_hit(result: RetrievalResult) -> RetrievalResult:
    return replace(result, cache_status=CACHE_HIT)


def result_to_dict(result: RetrievalResult) -> dict[str, Any]:
    distribution = result.recall_metrics.score_distribution
    return {
        "chunks": [_chunk_to_dict(chunk) for chunk in result.chunks],
        "total_retrieved": result.total_retrieved,
        "total_available": result.total_available,
        "recall_metrics": {
            "recall_score": result.recall_metrics.recall_score,
            "avg_score": result.recall_metrics.avg_score,
            "score_distribution": {
                "high": distribution.high,
                "medium": distribution.medium,
                "low": distribution.low,
                "score_range": {"min": distribution.min_score, "max": distribution.max_score},
            },
        },
        "diversity_metrics": {
            "content_type_diversity": result.diversity_metrics.content_type_diversity,
            "source_diversity": result.diversity_metrics.source_diversity,
            "temporal_diversity": result.diversity_metrics.temporal_diversity,
        },
        "filters_applied": dict(result.filters_applied),
        "query_hash": result.query_hash,
        "processing_time_ms": result.processing_time_ms,
        "warnings": [
            {"type": warning.type, "message": warning.message, "severity": warning.severity}
            for warning in result.warnings
        ],
        "cache_status": result.cache_status,
    }


def _chunk_to_dict(chunk: Chunk) -> dict[str, Any]:
    meta = chunk.metadata
    return {
        "id": chunk.id,
        "text": chunk.text,
        "score": chunk.score,
        "metadata": {
            "source_url": meta.source_url,
            "type": meta.type,
            "date": meta.date,
            "license": meta.license,
            "language": meta.language,
            "content_id": meta.content_id,
            "author": meta.author,
            "author_id": meta.author_id,
            "categories": list(meta.categories),
            "tags": list(meta.tags),
            "word_count": meta.word_count,
            "excerpt": meta.excerpt,
        },
    }


def result_from_dict(payload: Mapping[str, Any]) -> RetrievalResult:
    """Rebuild a result from ``result_to_dict`` output. Raises ``KeyError``/``TypeError`` on bad input."""

    metrics = payload["recall_metrics"]
    distribution = metrics["score_distribution"]
    score_range = distribution.get("score_range", {})
    diversity = payload.get("diversity_metrics") or {}
    return RetrievalResult(
        chunks=tuple(_chunk_from_dict(item) for item in payload["chunks"]),
        total_retrieved=int(payload["total_retrieved"]),
        recall_metrics=RecallMetrics(
            recall_score=float(metrics["recall_score"]),
            avg_score=float(metrics["avg_score"]),
            score_distribution=ScoreDistribution(
                high=int(distribution["high"]),
                medium=int(distribution["medium"]),
                low=int(distribution["low"]),
                min_score=float(score_range.get("min", 0.0)),
                max_score=float(score_range.get("max", 0.0)),
            ),
        ),
        query_hash=str(payload["query_hash"]),
        processing_time_ms=float(payload["processing_time_ms"]),
        warnings=tuple(
            RetrievalWarning(type=item["type"], message=item["message"], severity=item["severity"])
            for item in payload["warnings"]
        ),
        cache_status=str(payload.get("cache_status", CACHE_MISS)),
        total_available=int(payload.get("total_available", payload["total_retrieved"])),
        diversity_metrics=DiversityMetrics(
            content_type_diversity=float(diversity.get("content_type_diversity", 0.0)),
            source_diversity=float(diversity.get("source_diversity", 0.0)),
            temporal_diversity=float(diversity.get("temporal_diversity", 0.0)),
        ),
        filters_applied={str(key): bool(value) for key, value in (payload.get("filters_applied") or {}).items()},
    )


def _chunk_from_dict(item: Mapping[str, Any]) -> Chunk:
    meta = item.get("metadata") or {}
    return Chunk(
        id=str(item["id"]),
        text=str(item["text"]),
        score=float(item["score"]),
        metadata=ChunkMetadata(
            source_url=meta.get("source_url"),
            type=meta.get("type", "unknown"),
            date=meta.get("date"),
            license=meta.get("license", "unknown"),
            language=meta.get("language", "en"),
            content_id=meta.get("content_id"),
            author=meta.get("author"),
            author_id=meta.get("author_id"),
            categories=tuple(meta.get("categories") or ()),
            tags=tuple(meta.get("tags") or ()),
            word_count=int(meta.get("word_count", 0)),
            excerpt=meta.get("excerpt", ""),
        ),
    )


def dump_result(result: RetrievalResult, *, indent: int | None = None) -> str:
    """Stable JSON rendering; identical results always produce identical text."""
    return json.dumps(result_to_dict(result), ensure_ascii=False, indent=indent)


__all__ = [
    "CACHE_HIT",
    "CACHE_MISS",
    "build_result",
    "filters_applied",
    "mark_cache_hit",
    "result_to_dict",
    "result_from_dict",
    "dump_result",
]
