from application.retrieval.cache_keys import canonical_request, derive_cache_key, derive_query_hash
from application.retrieval.diagnostics import generate_warnings
from application.retrieval.formatting import format_chunk, format_chunks
from application.retrieval.metrics import calculate_diversity_metrics, calculate_recall_metrics, duplicate_ratio
from application.retrieval.quality import QualityReport, apply_quality_filters
from application.retrieval.response import (
    build_result,
    dump_result,
    mark_cache_hit,
    result_from_dict,
    result_to_dict,
)
from application.retrieval.result_cache import ResultCache
from application.retrieval.settings import FilterOptions, QualitySettings
from application.retrieval.validation import normalize_filters, validate_request

__all__ = [
    "validate_request",
    "normalize_filters",
    "canonical_request",
    "derive_cache_key",
    "derive_query_hash",
    "format_chunk",
    "format_chunks",
    "QualityReport",
    "apply_quality_filters",
    "calculate_recall_metrics",
    "calculate_diversity_metrics",
    "duplicate_ratio",
    "generate_warnings",
    "build_result",
    "dump_result",
    "mark_cache_hit",
    "result_from_dict",
    "result_to_dict",
    "ResultCache",
    "FilterOptions",
    "QualitySettings",
]
