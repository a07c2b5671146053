"""FastAPI layer that exposes the context retrieval pipeline."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from application.retrieval.response import result_to_dict
from application.use_cases.retrieve_context import retrieve_context
from domain.errors import CacheError, ConfigurationError, UpstreamError, ValidationError
from infrastructure.config import Container, build_default_container
from ui.logging_utils import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(title="ContextRetrieval API")


@lru_cache(maxsize=1)
def get_container() -> Container:
    setup_logging()
    return build_default_container()


class RetrieveRequest(BaseModel):
    """Loosely typed body; field checks happen in the domain validator so every problem is reported."""

    sectionId: Any = None
    query: Any = None
    namespaces: Any = None
    k: Any = None
    min_score: Any = None
    filters: Any = None


class ScoreRange(BaseModel):
    min: float
    max: float


class ScoreDistributionPayload(BaseModel):
    high: int
    medium: int
    low: int
    score_range: ScoreRange


class RecallMetricsPayload(BaseModel):
    recall_score: float
    avg_score: float
    score_distribution: ScoreDistributionPayload


class DiversityMetricsPayload(BaseModel):
    content_type_diversity: float
    source_diversity: float
    temporal_diversity: float


class ChunkMetadataPayload(BaseModel):
    source_url: Optional[str] = None
    type: str
    date: Optional[str] = None
    license: str
    language: str
    content_id: Optional[int] = None
    author: Optional[str] = None
    author_id: Optional[int] = None
    categories: list[str]
    tags: list[str]
    word_count: int
    excerpt: str


class ChunkPayload(BaseModel):
    id: str
    text: str
    score: float
    metadata: ChunkMetadataPayload


class WarningPayload(BaseModel):
    type: str
    message: str
    severity: str


class RetrieveResponse(BaseModel):
    chunks: list[ChunkPayload]
    total_retrieved: int
    total_available: int
    recall_metrics: RecallMetricsPayload
    diversity_metrics: DiversityMetricsPayload
    filters_applied: dict[str, bool]
    query_hash: str
    processing_time_ms: float
    warnings: list[WarningPayload]
    cache_status: str


class CacheStatsResponse(BaseModel):
    hits: int
    misses: int
    stores: int
    invalid: int
    errors: int
    purged: int
    total_requests: int
    hit_rate_percentage: float


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "problems": [problem.to_dict() for problem in exc.problems]},
    )


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    return JSONResponse(
        status_code=504 if exc.category == "TIMEOUT" else 502,
        content={
            "error": "upstream_error",
            "message": exc.message,
            "status": exc.status,
            "category": exc.category,
            "retryable": exc.retryable,
        },
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Service misconfigured: %s", exc)
    return JSONResponse(status_code=503, content={"error": "configuration_error", "message": str(exc)})


@app.get("/health")
def health_endpoint() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/retrieve", response_model=RetrieveResponse)
def retrieve_endpoint(
    payload: RetrieveRequest,
    container: Container = Depends(get_container),
) -> RetrieveResponse:
    result = retrieve_context(
        payload.model_dump(exclude_unset=True),
        search_client=container.search_client,
        result_cache=container.result_cache,
        quality_settings=container.quality_settings,
        filter_options=container.filter_options,
        boost_table=container.boost_table,
        extractor=container.extractor,
        timeout=container.timeout_seconds,
    )
    return RetrieveResponse(**result_to_dict(result))


@app.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats_endpoint(container: Container = Depends(get_container)) -> CacheStatsResponse:
    return CacheStatsResponse(**container.result_cache.stats())


@app.post("/cache/maintenance")
def cache_maintenance_endpoint(container: Container = Depends(get_container)) -> dict[str, int]:
    return {"purged": container.result_cache.purge_expired()}


@app.delete("/cache")
def cache_clear_endpoint(container: Container = Depends(get_container)) -> dict[str, bool]:
    try:
        container.result_cache.clear()
    except CacheError:
        logger.warning("Cache flush failed", exc_info=True)
        return {"cleared": False}
    return {"cleared": True}
