"""HTTP client for a GraphQL similarity-search service (Smart Search style)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from domain.entities import ProviderDocument, SearchResponse, SimilarityQuery
from domain.errors import ConfigurationError, UpstreamError
from domain.interfaces import VectorSearchClient
from infrastructure.search.query_builder import graphql_payload

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SmartSearchConfig:
    api_url: str = ""
    access_token: str = ""
    timeout_seconds: float = 30.0
    user_agent: str = "ContextRetrieval/1.0"


class SmartSearchClient(VectorSearchClient):
    """Runs a single similarity query per call. Retries are the caller's decision."""

    def __init__(self, config: SmartSearchConfig, session: requests.Session | None = None) -> None:
        if not config.api_url or not config.access_token:
            raise ConfigurationError("Vector search endpoint and access token must be configured.")
        self._config = config
        self._session = session or requests.Session()

    def search(self, query: SimilarityQuery, *, timeout: float | None = None) -> SearchResponse:
        payload = graphql_payload(query)
        effective_timeout = timeout if timeout is not None else self._config.timeout_seconds
        logger.debug(
            "Similarity request: limit=%d namespaces=%s filter=%s",
            query.limit,
            ",".join(query.namespaces),
            query.filter_expression,
        )
        try:
            response = self._session.post(
                self._config.api_url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self._config.access_token}",
                    "Content-Type": "application/json",
                    "User-Agent": self._config.user_agent,
                },
                timeout=effective_timeout,
            )
        except requests.Timeout as exc:
            raise UpstreamError(
                f"Vector search timed out after {effective_timeout:g}s.",
                category="TIMEOUT",
                detail=str(exc),
            ) from exc
        except requests.ConnectionError as exc:
            raise UpstreamError(
                "Vector search service is unreachable.",
                category="NETWORK",
                detail=str(exc),
            ) from exc
        except requests.RequestException as exc:
            raise UpstreamError("Vector search request failed.", category="NETWORK", detail=str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise UpstreamError(
                f"Vector search failed with status {response.status_code}.",
                status=response.status_code,
                category=_classify_status(response.status_code),
                detail=response.text[:500],
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "Vector search returned a malformed response.",
                status=response.status_code,
                category="MALFORMED_RESPONSE",
                detail=str(exc),
            ) from exc

        return parse_similarity_response(body, status=response.status_code)


def parse_similarity_response(body: Any, *, status: int | None = None) -> SearchResponse:
    """Extract ``total`` and documents from a GraphQL similarity response body."""

    if not isinstance(body, Mapping):
        raise UpstreamError(
            "Vector search returned a malformed response.",
            status=status,
            category="MALFORMED_RESPONSE",
            detail=f"body is {type(body).__name__}",
        )
    errors = body.get("errors")
    if errors:
        messages = [
            str(error.get("message", "unknown error")) if isinstance(error, Mapping) else str(error)
            for error in (errors if isinstance(errors, list) else [errors])
        ]
        raise UpstreamError(
            "Vector search reported query errors.",
            status=status,
            category="API_RESPONSE",
            detail="; ".join(messages),
        )

    data = body.get("data")
    similarity = data.get("similarity") if isinstance(data, Mapping) else None
    if not isinstance(similarity, Mapping):
        raise UpstreamError(
            "Vector search returned a malformed response.",
            status=status,
            category="MALFORMED_RESPONSE",
            detail="missing data.similarity",
        )

    docs = similarity.get("docs") or []
    if not isinstance(docs, list):
        raise UpstreamError(
            "Vector search returned a malformed response.",
            status=status,
            category="MALFORMED_RESPONSE",
            detail="docs is not a list",
        )

    documents = tuple(
        ProviderDocument(
            id=None if doc.get("id") is None else str(doc.get("id")),
            score=doc.get("score"),
            data=doc.get("data"),
            metadata=doc.get("metadata"),
        )
        for doc in docs
        if isinstance(doc, Mapping)
    )
    total = similarity.get("total")
    if isinstance(total, bool) or not isinstance(total, int):
        total = len(documents)
    return SearchResponse(total=total, documents=documents)


def _classify_status(status: int) -> str:
    if status in (401, 403):
        return "AUTHENTICATION"
    if status == 429:
        return "RATE_LIMIT"
    return "API_RESPONSE"


__all__ = ["SmartSearchClient", "SmartSearchConfig", "parse_similarity_response"]
