"""Diagnostics emitted when retrieval quality is marginal."""
from __future__ import annotations

from typing import Sequence

from application.retrieval.settings import QualitySettings
from domain.entities import Chunk, DiversityMetrics, RecallMetrics, RetrievalRequest, RetrievalWarning


def generate_warnings(
    chunks: Sequence[Chunk],
    metrics: RecallMetrics,
    request: RetrievalRequest,
    *,
    settings: QualitySettings | None = None,
    duplicate_ratio: float = 0.0,
    diversity: DiversityMetrics | None = None,
) -> list[RetrievalWarning]:
    """Return warnings in a fixed order: recall, count, relevance, license, duplicates, diversity."""

    cfg = settings or QualitySettings()
    count = len(chunks)
    warnings: list[RetrievalWarning] = []

    threshold = cfg.recall_threshold
    if metrics.recall_score < threshold:
        warnings.append(
            RetrievalWarning(
                type="low_recall",
                message=(
                    f"Recall score {metrics.recall_score:.3f} is below the {cfg.strictness} "
                    f"threshold {threshold:.2f}; consider broadening the query or lowering min_score."
                ),
                severity="warning",
            )
        )

    if count < cfg.min_results:
        warnings.append(
            RetrievalWarning(
                type="insufficient_results",
                message=(
                    "No chunks passed the quality filters."
                    if count == 0
                    else f"Only {count} chunk(s) passed the quality filters; at least {cfg.min_results} are expected."
                ),
                severity="error" if count == 0 else "warning",
            )
        )

    if metrics.avg_score < cfg.low_relevance_threshold:
        warnings.append(
            RetrievalWarning(
                type="low_relevance",
                message=(
                    f"Average relevance {metrics.avg_score:.3f} is below "
                    f"{cfg.low_relevance_threshold:.2f}; try refining the query."
                ),
                severity="warning",
            )
        )

    if request.filters.licenses and count < request.k * cfg.license_impact_ratio:
        allowed = ", ".join(request.filters.licenses)
        warnings.append(
            RetrievalWarning(
                type="license_filter_impact",
                message=(
                    f"License filter ({allowed}) left {count} of {request.k} requested chunks; "
                    "consider relaxing it."
                ),
                severity="info",
            )
        )

    if duplicate_ratio > cfg.duplicate_ratio_threshold:
        warnings.append(
            RetrievalWarning(
                type="duplicate_content",
                message=f"{duplicate_ratio:.0%} of the chunks repeat text already present in the result.",
                severity="info",
            )
        )

    if (
        diversity is not None
        and count > 3
        and diversity.content_type_diversity < cfg.low_diversity_threshold
    ):
        warnings.append(
            RetrievalWarning(
                type="low_diversity",
                message="Results come from a narrow set of content types; consider adding namespaces.",
                severity="info",
            )
        )

    return warnings


__all__ = ["generate_warnings"]
