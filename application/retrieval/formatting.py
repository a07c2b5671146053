"""Maps raw provider documents to chunks with standardized metadata."""
from __future__ import annotations

import hashlib
import logging
import math
import re
from datetime import datetime
from typing import Any, Iterable, Mapping

from domain.entities import UNKNOWN_LICENSE, Chunk, ChunkMetadata, License, ProviderDocument
from domain.interfaces import TextExtractor
from infrastructure.text_extraction.html_extractor import HtmlExtractor

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 2000
MAX_EXCERPT_LENGTH = 200
EXCERPT_WORDS = 30
DEFAULT_LANGUAGE = "en"

CONTENT_TYPE_MAP = {
    "post": "article",
    "page": "page",
    "product": "product",
    "attachment": "media",
    "revision": "revision",
    "nav_menu_item": "menu_item",
}

# Applied only when a document carries no recognised license tag.
LICENSE_BY_TYPE = {
    "product": License.COMMERCIAL.value,
    "media": License.FAIR_USE.value,
}

_LICENSE_LOOKUP = {member.value.lower(): member.value for member in License}
_ID_UNSAFE = re.compile(r"[^a-z0-9_-]+")
_LANGUAGE_PATTERN = re.compile(r"^[a-z]{2}$")

_default_extractor = HtmlExtractor()


def format_chunks(
    documents: Iterable[ProviderDocument],
    *,
    extractor: TextExtractor | None = None,
    max_text_length: int = MAX_TEXT_LENGTH,
) -> list[Chunk]:
    """Format every usable document, keeping provider order."""

    chunks: list[Chunk] = []
    dropped = 0
    for document in documents:
        chunk = format_chunk(document, extractor=extractor, max_text_length=max_text_length)
        if chunk is None:
            dropped += 1
            continue
        chunks.append(chunk)
    if dropped:
        logger.debug("Dropped %d provider documents without usable text or score", dropped)
    return chunks


def format_chunk(
    document: ProviderDocument,
    *,
    extractor: TextExtractor | None = None,
    max_text_length: int = MAX_TEXT_LENGTH,
) -> Chunk | None:
    """Return a chunk for ``document`` or ``None`` when it has nothing usable."""

    data = document.data
    if not isinstance(data, Mapping):
        return None
    score = _as_score(document.score)
    if score is None:
        return None
    metadata = document.metadata if isinstance(document.metadata, Mapping) else {}
    extractor = extractor or _default_extractor

    body = _clean(data.get("post_content"), extractor)
    excerpt = _clean(data.get("post_excerpt"), extractor)
    text = body or excerpt or _fallback_text(data, metadata, extractor)
    if not text:
        return None

    return Chunk(
        id=_chunk_id(document.id, text),
        text=_truncate(text, max_text_length),
        score=score,
        metadata=_build_metadata(data, metadata, body=body, excerpt=excerpt),
    )


def _as_score(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(score) or math.isinf(score):
        return None
    return score


def _clean(value: Any, extractor: TextExtractor) -> str:
    if not isinstance(value, str) or not value.strip():
        return ""
    return extractor.extract(value).strip()


def _fallback_text(data: Mapping[str, Any], metadata: Mapping[str, Any], extractor: TextExtractor) -> str:
    for candidate in (metadata.get("description"), metadata.get("summary"), data.get("post_title")):
        text = _clean(candidate, extractor)
        if text:
            return text
    return ""


def _chunk_id(provider_id: Any, text: str) -> str:
    if provider_id is not None:
        cleaned = _ID_UNSAFE.sub("", str(provider_id).lower())
        if cleaned:
            return f"chunk-{cleaned}"
    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:16]
    return f"chunk-{digest}"


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    cut = text[: limit - 3]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip() + "..."


def _build_metadata(
    data: Mapping[str, Any],
    metadata: Mapping[str, Any],
    *,
    body: str,
    excerpt: str,
) -> ChunkMetadata:
    content_type = _content_type(data.get("post_type"))
    return ChunkMetadata(
        source_url=_source_url(data, metadata),
        type=content_type,
        date=_iso_date(data.get("post_date") or metadata.get("date")),
        license=_license(metadata.get("license"), content_type),
        language=_language(metadata.get("language")),
        content_id=_positive_int(data.get("post_id") or data.get("ID")),
        author=_author_name(data, metadata),
        author_id=_positive_int(data.get("post_author")),
        categories=_string_tuple(data.get("categories") or metadata.get("categories")),
        tags=_string_tuple(metadata.get("tags")),
        word_count=len(body.split()) if body else len((excerpt or "").split()),
        excerpt=_excerpt(excerpt, body),
    )


def _content_type(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        return "unknown"
    post_type = value.strip().lower()
    return CONTENT_TYPE_MAP.get(post_type, post_type)


def _source_url(data: Mapping[str, Any], metadata: Mapping[str, Any]) -> str | None:
    for candidate in (metadata.get("source_url"), data.get("permalink"), data.get("url"), data.get("guid")):
        if isinstance(candidate, str) and candidate.strip().startswith(("http://", "https://")):
            return candidate.strip()
    return None


def _iso_date(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if len(raw) == 10:
        return parsed.date().isoformat()
    return parsed.isoformat()


def _license(value: Any, content_type: str) -> str:
    if isinstance(value, str) and value.strip().lower() in _LICENSE_LOOKUP:
        return _LICENSE_LOOKUP[value.strip().lower()]
    return LICENSE_BY_TYPE.get(content_type, UNKNOWN_LICENSE)


def _language(value: Any) -> str:
    if isinstance(value, str):
        language = value.strip().lower()[:2]
        if _LANGUAGE_PATTERN.match(language):
            return language
    return DEFAULT_LANGUAGE


def _author_name(data: Mapping[str, Any], metadata: Mapping[str, Any]) -> str | None:
    for candidate in (data.get("author_name"), data.get("post_author_name"), metadata.get("author")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _string_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def _excerpt(excerpt: str, body: str) -> str:
    if excerpt:
        if len(excerpt) > MAX_EXCERPT_LENGTH:
            return excerpt[: MAX_EXCERPT_LENGTH - 3] + "..."
        return excerpt
    words = body.split()
    if len(words) > EXCERPT_WORDS:
        return " ".join(words[:EXCERPT_WORDS]) + "..."
    return " ".join(words)


__all__ = [
    "format_chunk",
    "format_chunks",
    "CONTENT_TYPE_MAP",
    "LICENSE_BY_TYPE",
    "MAX_TEXT_LENGTH",
]
