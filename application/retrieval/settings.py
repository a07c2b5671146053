"""Quality thresholds and filter allow-lists injected into the pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Strictness = Literal["lenient", "balanced", "strict"]

RECALL_THRESHOLDS: dict[str, float] = {
    "lenient": 0.4,
    "balanced": 0.6,
    "strict": 0.8,
}

DEFAULT_POST_TYPES = ("post", "page", "product", "attachment", "docs", "knowledge_base")
DEFAULT_POST_STATUSES = ("publish", "draft", "pending", "private", "future")

DEFAULT_PLACEHOLDER_PHRASES = (
    "lorem ipsum",
    "placeholder",
    "coming soon",
    "under construction",
    "test content",
)


@dataclass(slots=True, frozen=True)
class FilterOptions:
    """Allow-lists the filter normalizer checks values against."""

    allowed_post_types: tuple[str, ...] = DEFAULT_POST_TYPES
    allowed_post_statuses: tuple[str, ...] = DEFAULT_POST_STATUSES


@dataclass(slots=True, frozen=True)
class QualitySettings:
    """Thresholds used by the quality filter and the warning generator."""

    strictness: Strictness = "balanced"
    min_word_count: int = 20
    min_text_length: int = 50
    max_text_length: int = 2000
    placeholder_phrases: tuple[str, ...] = DEFAULT_PLACEHOLDER_PHRASES
    max_word_repetition: float = 0.3
    min_results: int = 3
    low_relevance_threshold: float = 0.6
    license_impact_ratio: float = 0.5
    duplicate_ratio_threshold: float = 0.3
    low_diversity_threshold: float = 0.3
    recall_thresholds: dict[str, float] = field(default_factory=lambda: dict(RECALL_THRESHOLDS))

    @property
    def recall_threshold(self) -> float:
        try:
            return self.recall_thresholds[self.strictness]
        except KeyError as exc:
            raise ValueError(f"Unknown strictness '{self.strictness}'") from exc


__all__ = [
    "Strictness",
    "RECALL_THRESHOLDS",
    "FilterOptions",
    "QualitySettings",
]
