"""Canonical request serialization and cache key derivation."""
from __future__ import annotations

import hashlib
import json
from typing import Any

from domain.entities import FilterCriteria, RetrievalRequest

CACHE_FORMAT_VERSION = "1"
DEFAULT_KEY_PREFIX = "retrieval:"


def canonical_request(request: RetrievalRequest) -> dict[str, Any]:
    """Return only the fields that affect retrieval output, with collections sorted."""

    return {
        "version": CACHE_FORMAT_VERSION,
        "query": request.query,
        "namespaces": sorted(namespace.value for namespace in request.namespaces),
        "k": request.k,
        "min_score": float(request.min_score),
        "filters": canonical_filters(request.filters),
    }


def canonical_filters(filters: FilterCriteria) -> dict[str, Any]:
    canonical: dict[str, Any] = {}
    if filters.post_types:
        canonical["post_type"] = sorted(set(filters.post_types))
    if filters.post_statuses:
        canonical["post_status"] = sorted(set(filters.post_statuses))
    if filters.licenses:
        canonical["license"] = sorted(set(filters.licenses))
    if filters.language:
        canonical["language"] = filters.language
    if filters.date_range is not None:
        canonical["date_range"] = {
            "start": filters.date_range.start.isoformat() if filters.date_range.start else None,
            "end": filters.date_range.end.isoformat() if filters.date_range.end else None,
        }
    if filters.authors:
        canonical["author"] = sorted(set(filters.authors))
    if filters.exclude_ids:
        canonical["exclude_ids"] = sorted(set(filters.exclude_ids))
    if filters.min_word_count is not None:
        canonical["min_word_count"] = filters.min_word_count
    return canonical


def serialize_canonical(request: RetrievalRequest) -> bytes:
    payload = json.dumps(
        canonical_request(request),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return payload.encode("utf-8")


def derive_query_hash(request: RetrievalRequest) -> str:
    """Content-addressed identifier of the request."""
    return hashlib.sha256(serialize_canonical(request)).hexdigest()


def derive_cache_key(request: RetrievalRequest, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    return f"{prefix}{derive_query_hash(request)}"


__all__ = [
    "CACHE_FORMAT_VERSION",
    "DEFAULT_KEY_PREFIX",
    "canonical_request",
    "canonical_filters",
    "serialize_canonical",
    "derive_query_hash",
    "derive_cache_key",
]
