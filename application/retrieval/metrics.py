from __future__ import annotations

import re
from typing import Sequence

from domain.entities import Chunk, DiversityMetrics, RecallMetrics, ScoreDistribution

HIGH_SCORE = 0.8
MEDIUM_SCORE = 0.6
PRECISION = 4

_WHITESPACE = re.compile(r"\s+")


def calculate_recall_metrics(chunks: Sequence[Chunk]) -> RecallMetrics:
    # recall_score approximates recall from the filtered set only; candidates
    # under min_score are never seen.
    if not chunks:
        return RecallMetrics()
    scores = [chunk.score for chunk in chunks]
    recall = sum(min(score, 1.0) for score in scores) / len(scores)
    average = sum(scores) / len(scores)
    return RecallMetrics(
        recall_score=round(max(0.0, min(recall, 1.0)), PRECISION),
        avg_score=round(average, PRECISION),
        score_distribution=score_distribution(scores),
    )


def score_distribution(scores: Sequence[float]) -> ScoreDistribution:
    if not scores:
        return ScoreDistribution()
    high = sum(1 for score in scores if score >= HIGH_SCORE)
    medium = sum(1 for score in scores if MEDIUM_SCORE <= score < HIGH_SCORE)
    return ScoreDistribution(
        high=high,
        medium=medium,
        low=len(scores) - high - medium,
        min_score=round(min(scores), PRECISION),
        max_score=round(max(scores), PRECISION),
    )


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text.lower()).strip()


def duplicate_ratio(chunks: Sequence[Chunk]) -> float:
    if not chunks:
        return 0.0
    distinct = {normalize_text(chunk.text) for chunk in chunks}
    return round(1.0 - len(distinct) / len(chunks), PRECISION)


def calculate_diversity_metrics(chunks: Sequence[Chunk]) -> DiversityMetrics:
    if not chunks:
        return DiversityMetrics()
    total = len(chunks)
    types = {chunk.metadata.type for chunk in chunks}
    sources = {
        chunk.metadata.content_id or chunk.metadata.source_url or chunk.id
        for chunk in chunks
    }
    months = {chunk.metadata.date[:7] for chunk in chunks if chunk.metadata.date}
    return DiversityMetrics(
        content_type_diversity=round(len(types) / total, PRECISION),
        source_diversity=round(len(sources) / total, PRECISION),
        temporal_diversity=round(len(months) / total, PRECISION),
    )


__all__ = [
    "HIGH_SCORE",
    "MEDIUM_SCORE",
    "calculate_recall_metrics",
    "score_distribution",
    "normalize_text",
    "duplicate_ratio",
    "calculate_diversity_metrics",
]
