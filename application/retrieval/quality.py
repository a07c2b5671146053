"""Quality gate that prunes low-value chunks before they reach callers.

Rules run in a fixed order and stop at the first failure, so each rejected
chunk has exactly one reason. Cheap checks come first.
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable

from application.retrieval.settings import QualitySettings
from domain.entities import UNKNOWN_LICENSE, Chunk, License, RetrievalRequest

logger = logging.getLogger(__name__)

_REPEATED_CHARACTERS = re.compile(r"(.)\1{9,}")

RULE_ORDER = (
    "min_score",
    "license",
    "language",
    "word_count",
    "placeholder",
    "excluded_id",
    "date_range",
)


@dataclass(slots=True)
class QualityReport:
    chunks: list[Chunk] = field(default_factory=list)
    rejections: dict[str, int] = field(default_factory=dict)
    candidates: int = 0


def apply_quality_filters(
    chunks: Iterable[Chunk],
    request: RetrievalRequest,
    *,
    settings: QualitySettings | None = None,
) -> QualityReport:
    """Keep the chunks that pass every active rule, in provider order, up to ``k``."""

    cfg = settings or QualitySettings()
    rules = _active_rules(request, cfg)
    report = QualityReport()
    rejections: Counter[str] = Counter()

    for chunk in chunks:
        report.candidates += 1
        reason = next((name for name, check in rules if not check(chunk)), None)
        if reason is not None:
            rejections[reason] += 1
            continue
        if len(report.chunks) < request.k:
            report.chunks.append(chunk)

    report.rejections = {name: rejections[name] for name in RULE_ORDER if rejections[name]}
    logger.debug(
        "Quality filter kept %d of %d chunks (rejections: %s)",
        len(report.chunks),
        report.candidates,
        report.rejections,
    )
    return report


def _active_rules(
    request: RetrievalRequest,
    settings: QualitySettings,
) -> list[tuple[str, Callable[[Chunk], bool]]]:
    filters = request.filters
    rules: list[tuple[str, Callable[[Chunk], bool]]] = [
        ("min_score", lambda chunk: chunk.score >= request.min_score),
    ]
    if filters.licenses:
        allowed = set(filters.licenses)
        rules.append(("license", lambda chunk: passes_license(chunk, allowed)))
    if filters.language:
        rules.append(("language", lambda chunk: chunk.metadata.language == filters.language))
    min_words = filters.min_word_count if filters.min_word_count is not None else settings.min_word_count
    rules.append(("word_count", lambda chunk: chunk.metadata.word_count >= min_words))
    rules.append(("placeholder", lambda chunk: not is_placeholder(chunk.text, settings)))
    if filters.exclude_ids:
        excluded = set(filters.exclude_ids)
        rules.append(("excluded_id", lambda chunk: chunk.metadata.content_id not in excluded))
    if filters.date_range is not None:
        start, end = filters.date_range.start, filters.date_range.end
        rules.append(("date_range", lambda chunk: passes_date_range(chunk, start, end)))
    return rules


def passes_license(chunk: Chunk, allowed: set[str]) -> bool:
    license_tag = chunk.metadata.license
    if license_tag == UNKNOWN_LICENSE and License.COMMERCIAL.value in allowed:
        return True
    return license_tag in allowed


def passes_date_range(chunk: Chunk, start: date | None, end: date | None) -> bool:
    if not chunk.metadata.date:
        return True
    try:
        published = datetime.fromisoformat(chunk.metadata.date).date()
    except ValueError:
        return True
    if start is not None and published < start:
        return False
    if end is not None and published > end:
        return False
    return True


def is_placeholder(text: str, settings: QualitySettings) -> bool:
    """Heuristic detection of boilerplate and filler text."""

    stripped = text.strip()
    if len(stripped) < settings.min_text_length:
        return True
    lowered = stripped.lower()
    if any(phrase in lowered for phrase in settings.placeholder_phrases):
        return True
    if _REPEATED_CHARACTERS.search(stripped):
        return True
    words = lowered.split()
    if len(words) > 10:
        most_common = Counter(words).most_common(1)[0][1]
        if most_common / len(words) > settings.max_word_repetition:
            return True
    return False


__all__ = [
    "QualityReport",
    "RULE_ORDER",
    "apply_quality_filters",
    "is_placeholder",
    "passes_license",
    "passes_date_range",
]
