"""Translates validated requests into provider similarity queries."""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from domain.entities import DEFAULT_NAMESPACE, FieldBoost, FilterCriteria, Namespace, RetrievalRequest, SimilarityQuery

BOOST_TABLE_VERSION = "2024-06"

BOOST_TABLE: Mapping[Namespace, tuple[FieldBoost, ...]] = MappingProxyType(
    {
        Namespace.CONTENT: (
            FieldBoost("post_title", 1.2),
            FieldBoost("post_content", 1.0),
            FieldBoost("post_excerpt", 0.8),
        ),
        Namespace.DOCS: (
            FieldBoost("post_title", 1.5),
            FieldBoost("post_content", 1.2),
            FieldBoost("post_excerpt", 0.6),
        ),
        Namespace.PRODUCTS: (
            FieldBoost("post_title", 1.5),
            FieldBoost("post_excerpt", 1.2),
            FieldBoost("post_content", 0.8),
        ),
        Namespace.KNOWLEDGE: (
            FieldBoost("post_content", 1.2),
            FieldBoost("post_title", 1.0),
            FieldBoost("post_excerpt", 0.8),
        ),
    }
)

SIMILARITY_QUERY = """
query GetSimilarContent($query: String!, $fields: [FieldInput!]!, $limit: Int!, $offset: Int!, $filter: String, $minScore: Float, $namespaces: [String!]) {
  similarity(
    input: {nearest: {text: $query, fields: $fields}, filter: $filter, namespaces: $namespaces}
    limit: $limit
    offset: $offset
    minScore: $minScore
  ) {
    total
    docs {
      id
      score
      data
      metadata
    }
  }
}
""".strip()


def resolve_boosts(
    namespaces: tuple[Namespace, ...],
    table: Mapping[Namespace, tuple[FieldBoost, ...]] = BOOST_TABLE,
) -> tuple[FieldBoost, ...]:
    """Merge boost profiles of every namespace, keeping the highest boost per field."""

    merged: dict[str, float] = {}
    for namespace in namespaces or (DEFAULT_NAMESPACE,):
        profile = table.get(namespace) or table[DEFAULT_NAMESPACE]
        for field_boost in profile:
            merged[field_boost.name] = max(merged.get(field_boost.name, 0.0), field_boost.boost)
    return tuple(FieldBoost(name, merged[name]) for name in sorted(merged))


def build_filter_expression(filters: FilterCriteria) -> str | None:
    """AND across dimensions, OR within a dimension; ``None`` when nothing is filtered."""

    parts: list[str] = []
    if filters.post_types:
        parts.append(_any_of("post_type", filters.post_types))
    if filters.post_statuses:
        parts.append(_any_of("post_status", filters.post_statuses))
    if filters.licenses:
        parts.append(_any_of("license", filters.licenses))
    if filters.language:
        parts.append(f"language:{filters.language}")
    if filters.authors:
        parts.append(_any_of("post_author", filters.authors))
    if filters.date_range is not None:
        bounds: list[str] = []
        if filters.date_range.start is not None:
            bounds.append(f"post_date:>={filters.date_range.start.isoformat()}")
        if filters.date_range.end is not None:
            bounds.append(f"post_date:<={filters.date_range.end.isoformat()}")
        parts.append(bounds[0] if len(bounds) == 1 else f"({' AND '.join(bounds)})")
    if filters.exclude_ids:
        parts.append(f"NOT ID:({' OR '.join(str(item) for item in filters.exclude_ids)})")
    if not parts:
        return None
    return " AND ".join(parts)


def _any_of(field_name: str, values: tuple[Any, ...]) -> str:
    return "(" + " OR ".join(f"{field_name}:{value}" for value in values) + ")"


def build_similarity_query(
    request: RetrievalRequest,
    table: Mapping[Namespace, tuple[FieldBoost, ...]] = BOOST_TABLE,
) -> SimilarityQuery:
    return SimilarityQuery(
        text=request.query,
        fields=resolve_boosts(request.namespaces, table),
        namespaces=tuple(namespace.value for namespace in request.namespaces),
        limit=request.k,
        offset=0,
        min_score=request.min_score,
        filter_expression=build_filter_expression(request.filters),
    )


def graphql_payload(query: SimilarityQuery) -> dict[str, Any]:
    return {
        "query": SIMILARITY_QUERY,
        "variables": {
            "query": query.text,
            "fields": [{"name": item.name, "boost": item.boost} for item in query.fields],
            "limit": query.limit,
            "offset": query.offset,
            "filter": query.filter_expression,
            "minScore": query.min_score,
            "namespaces": list(query.namespaces),
        },
    }


__all__ = [
    "BOOST_TABLE",
    "BOOST_TABLE_VERSION",
    "SIMILARITY_QUERY",
    "resolve_boosts",
    "build_filter_expression",
    "build_similarity_query",
    "graphql_payload",
]
