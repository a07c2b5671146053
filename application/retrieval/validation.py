"""Request validation and filter normalization."""
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from application.retrieval.settings import FilterOptions
from domain.entities import DEFAULT_NAMESPACE, DateRange, FilterCriteria, License, Namespace, RetrievalRequest
from domain.errors import Problem, ValidationError

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 10
MAX_QUERY_LENGTH = 500
MIN_K = 1
MAX_K = 50
DEFAULT_K = 10
DEFAULT_MIN_SCORE = 0.5

_SECTION_ID_PATTERN = re.compile(r"^section-[A-Za-z0-9_-]+$")
_LANGUAGE_PATTERN = re.compile(r"^[a-z]{2}$")
_WHITESPACE = re.compile(r"\s+")

_UNSAFE_QUERY_PATTERNS = (
    re.compile(r"<script\b", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"\bdata:(?!image/)[a-z]+/[a-z0-9.+-]+[;,]", re.IGNORECASE),
    re.compile(r"\bon(?:load|error|click|mouseover)\s*=", re.IGNORECASE),
    re.compile(r"<(?:iframe|object|embed)\b", re.IGNORECASE),
)

_LICENSE_LOOKUP = {member.value.lower(): member.value for member in License}

_FILTER_ALIASES = {
    "post_type": "post_type",
    "post_types": "post_type",
    "type": "post_type",
    "post_status": "post_status",
    "status": "post_status",
    "license": "license",
    "licenses": "license",
    "language": "language",
    "date_range": "date_range",
    "author": "author",
    "authors": "author",
    "exclude_ids": "exclude_ids",
    "min_word_count": "min_word_count",
}


def validate_request(
    raw: Any,
    *,
    filter_options: FilterOptions | None = None,
) -> RetrievalRequest:
    """Turn untyped input into a ``RetrievalRequest`` or raise with every problem found."""

    if not isinstance(raw, Mapping):
        raise ValidationError([Problem("request", "must be a JSON object")])

    problems: list[Problem] = []

    section_id = raw.get("sectionId")
    if not isinstance(section_id, str) or not _SECTION_ID_PATTERN.match(section_id):
        problems.append(Problem("sectionId", "must match 'section-' followed by letters, digits, '_' or '-'"))

    query = _validate_query(raw.get("query"), problems)
    k = _validate_k(raw.get("k"), problems)
    min_score = _validate_min_score(raw.get("min_score"), problems)
    namespaces = _normalize_namespaces(raw.get("namespaces"))
    filters = normalize_filters(raw.get("filters"), options=filter_options)

    if problems:
        raise ValidationError(problems)

    return RetrievalRequest(
        section_id=section_id,
        query=query,
        namespaces=namespaces,
        k=k,
        min_score=min_score,
        filters=filters,
    )


def _validate_query(value: Any, problems: list[Problem]) -> str:
    if not isinstance(value, str):
        problems.append(Problem("query", "is required and must be a string"))
        return ""
    query = _WHITESPACE.sub(" ", value).strip()
    if not MIN_QUERY_LENGTH <= len(query) <= MAX_QUERY_LENGTH:
        problems.append(
            Problem("query", f"must be between {MIN_QUERY_LENGTH} and {MAX_QUERY_LENGTH} characters")
        )
    if any(pattern.search(query) for pattern in _UNSAFE_QUERY_PATTERNS):
        problems.append(Problem("query", "contains markup or script content"))
    return query


def _validate_k(value: Any, problems: list[Problem]) -> int:
    if value is None:
        return DEFAULT_K
    k = _coerce_int(value)
    if k is None:
        problems.append(Problem("k", "must be an integer"))
        return DEFAULT_K
    if not MIN_K <= k <= MAX_K:
        problems.append(Problem("k", f"must be between {MIN_K} and {MAX_K}"))
    return k


def _validate_min_score(value: Any, problems: list[Problem]) -> float:
    if value is None:
        return DEFAULT_MIN_SCORE
    if isinstance(value, bool):
        problems.append(Problem("min_score", "must be a number"))
        return DEFAULT_MIN_SCORE
    try:
        min_score = float(value)
    except (TypeError, ValueError):
        problems.append(Problem("min_score", "must be a number"))
        return DEFAULT_MIN_SCORE
    if not 0.0 <= min_score <= 1.0:
        problems.append(Problem("min_score", "must be between 0.0 and 1.0"))
    return min_score


def _normalize_namespaces(value: Any) -> tuple[Namespace, ...]:
    if value is None:
        return (DEFAULT_NAMESPACE,)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return (DEFAULT_NAMESPACE,)
    allowed = {member.value: member for member in Namespace}
    namespaces: set[Namespace] = set()
    for item in value:
        if not isinstance(item, str):
            continue
        namespace = allowed.get(item.strip().lower())
        if namespace is not None:
            namespaces.add(namespace)
    if not namespaces:
        return (DEFAULT_NAMESPACE,)
    return tuple(sorted(namespaces, key=lambda member: member.value))


def normalize_filters(raw: Any, *, options: FilterOptions | None = None) -> FilterCriteria:
    """Best-effort sanitization of filter input. Never raises."""

    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.debug("Ignoring non-mapping filters of type %s", type(raw).__name__)
        return FilterCriteria()

    opts = options or FilterOptions()
    values: dict[str, Any] = {}
    for key, value in raw.items():
        canonical = _FILTER_ALIASES.get(str(key).lower())
        if canonical is None:
            logger.debug("Dropping unknown filter key %r", key)
            continue
        values[canonical] = value

    date_range = _normalize_date_range(values.get("date_range"))
    return FilterCriteria(
        post_types=_allowed_strings(values.get("post_type"), opts.allowed_post_types),
        post_statuses=_allowed_strings(values.get("post_status"), opts.allowed_post_statuses),
        licenses=_normalize_licenses(values.get("license")),
        language=_normalize_language(values.get("language")),
        date_range=date_range,
        authors=_positive_ints(values.get("author")),
        exclude_ids=_positive_ints(values.get("exclude_ids")),
        min_word_count=_non_negative_int(values.get("min_word_count")),
    )


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _allowed_strings(value: Any, allowed: Iterable[str]) -> tuple[str, ...]:
    allowed_set = set(allowed)
    cleaned = {
        item.strip().lower()
        for item in _as_list(value)
        if isinstance(item, str) and item.strip().lower() in allowed_set
    }
    return tuple(sorted(cleaned))


def _normalize_licenses(value: Any) -> tuple[str, ...]:
    cleaned = {
        _LICENSE_LOOKUP[item.strip().lower()]
        for item in _as_list(value)
        if isinstance(item, str) and item.strip().lower() in _LICENSE_LOOKUP
    }
    return tuple(sorted(cleaned))


def _normalize_language(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    language = value.strip().lower()
    return language if _LANGUAGE_PATTERN.match(language) else None


def _normalize_date_range(value: Any) -> DateRange | None:
    if not isinstance(value, Mapping):
        return None
    start = _parse_date(value.get("start"))
    end = _parse_date(value.get("end"))
    if start is None and end is None:
        return None
    if start is not None and end is not None and start > end:
        logger.debug("Dropping inverted date range %s..%s", start, end)
        return None
    return DateRange(start=start, end=end)


def _parse_date(value: Any) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _positive_ints(value: Any) -> tuple[int, ...]:
    numbers = {number for number in (_coerce_int(item) for item in _as_list(value)) if number and number > 0}
    return tuple(sorted(numbers))


def _non_negative_int(value: Any) -> int | None:
    number = _coerce_int(value)
    if number is None or number < 0:
        return None
    return number


__all__ = [
    "validate_request",
    "normalize_filters",
    "MIN_QUERY_LENGTH",
    "MAX_QUERY_LENGTH",
    "MIN_K",
    "MAX_K",
    "DEFAULT_K",
    "DEFAULT_MIN_SCORE",
]
