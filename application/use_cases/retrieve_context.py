"""Use case that retrieves quality-gated grounding context for a content section."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

from application.retrieval.cache_keys import DEFAULT_KEY_PREFIX, derive_cache_key, derive_query_hash
from application.retrieval.diagnostics import generate_warnings
from application.retrieval.formatting import format_chunks
from application.retrieval.metrics import calculate_diversity_metrics, calculate_recall_metrics, duplicate_ratio
from application.retrieval.quality import apply_quality_filters
from application.retrieval.response import build_result, mark_cache_hit
from application.retrieval.result_cache import ResultCache
from application.retrieval.settings import FilterOptions, QualitySettings
from application.retrieval.validation import validate_request
from domain.entities import FieldBoost, Namespace, RetrievalRequest, RetrievalResult
from domain.errors import UpstreamError
from domain.interfaces import TextExtractor, VectorSearchClient
from infrastructure.search.query_builder import BOOST_TABLE, build_similarity_query

logger = logging.getLogger(__name__)


def retrieve_context(
    raw: Any,
    *,
    search_client: VectorSearchClient,
    result_cache: ResultCache | None = None,
    quality_settings: QualitySettings | None = None,
    filter_options: FilterOptions | None = None,
    boost_table: Mapping[Namespace, tuple[FieldBoost, ...]] = BOOST_TABLE,
    extractor: TextExtractor | None = None,
    timeout: float | None = None,
    key_prefix: str = DEFAULT_KEY_PREFIX,
    clock: Callable[[], float] = time.perf_counter,
) -> RetrievalResult:
    """Validate ``raw``, serve from cache when possible, otherwise query the provider."""

    started = clock()
    request = validate_request(raw, filter_options=filter_options)
    query_hash = derive_query_hash(request)

    def compute() -> RetrievalResult:
        return _run_pipeline(
            request,
            query_hash=query_hash,
            search_client=search_client,
            settings=quality_settings or QualitySettings(),
            boost_table=boost_table,
            extractor=extractor,
            timeout=timeout,
            started=started,
            clock=clock,
        )

    if result_cache is None:
        return compute()

    cache_key = derive_cache_key(request, key_prefix)
    with result_cache.single_flight(cache_key):
        cached = result_cache.get(cache_key)
        if cached is not None:
            logger.info("Retrieval %s served from cache (%d chunks)", query_hash[:12], cached.total_retrieved)
            return mark_cache_hit(cached)
        result = compute()
        result_cache.put(cache_key, result)
    return result


def _run_pipeline(
    request: RetrievalRequest,
    *,
    query_hash: str,
    search_client: VectorSearchClient,
    settings: QualitySettings,
    boost_table: Mapping[Namespace, tuple[FieldBoost, ...]],
    extractor: TextExtractor | None,
    timeout: float | None,
    started: float,
    clock: Callable[[], float],
) -> RetrievalResult:
    query = build_similarity_query(request, boost_table)
    try:
        response = search_client.search(query, timeout=timeout)
    except UpstreamError as exc:
        logger.error(
            "Retrieval %s failed upstream (category=%s status=%s): %s",
            query_hash[:12],
            exc.category,
            exc.status,
            exc.detail or exc.message,
        )
        raise

    candidates = format_chunks(response.documents, extractor=extractor, max_text_length=settings.max_text_length)
    report = apply_quality_filters(candidates, request, settings=settings)
    metrics = calculate_recall_metrics(report.chunks)
    diversity = calculate_diversity_metrics(report.chunks)
    warnings = generate_warnings(
        report.chunks,
        metrics,
        request,
        settings=settings,
        duplicate_ratio=duplicate_ratio(report.chunks),
        diversity=diversity,
    )
    result = build_result(
        request,
        report.chunks,
        query_hash=query_hash,
        metrics=metrics,
        diversity=diversity,
        warnings=warnings,
        total_available=response.total,
        elapsed_ms=(clock() - started) * 1000,
    )
    logger.info(
        "Retrieval %s: %d of %d provider documents kept, recall=%.3f, %d warning(s)",
        query_hash[:12],
        result.total_retrieved,
        len(response.documents),
        metrics.recall_score,
        len(warnings),
    )
    return result


__all__ = ["retrieve_context"]
