"""Error taxonomy for the ContextRetrieval system."""
from __future__ import annotations

from dataclasses import dataclass


class RetrievalError(Exception):
    """Base class for every error raised by the retrieval pipeline."""


@dataclass(slots=True, frozen=True)
class Problem:
    """One violated input constraint."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(RetrievalError):
    """Malformed or out-of-range input. Never retried."""

    def __init__(self, problems: list[Problem]) -> None:
        self.problems = list(problems)
        summary = "; ".join(f"{problem.field}: {problem.message}" for problem in self.problems)
        super().__init__(f"Invalid retrieval request ({summary})")


RETRYABLE_CATEGORIES = frozenset({"TIMEOUT", "NETWORK", "RATE_LIMIT"})


class UpstreamError(RetrievalError):
    """The vector search provider failed or answered with something unusable."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        category: str = "UNKNOWN",
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.category = category
        # Provider-side detail, kept for logs only.
        self.detail = detail

    @property
    def retryable(self) -> bool:
        if self.category in RETRYABLE_CATEGORIES:
            return True
        return self.status is not None and self.status >= 500


class CacheError(RetrievalError):
    """Reading from or writing to the cache store failed."""


class ConfigurationError(RetrievalError):
    """Required configuration (endpoint, credentials) is missing."""


__all__ = [
    "RetrievalError",
    "Problem",
    "ValidationError",
    "UpstreamError",
    "CacheError",
    "ConfigurationError",
    "RETRYABLE_CATEGORIES",
]
