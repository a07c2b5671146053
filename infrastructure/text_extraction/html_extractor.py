"""HTML extractor that strips tags and normalises whitespace."""
from __future__ import annotations

from html.parser import HTMLParser

from domain.interfaces import TextExtractor

_SKIPPED_TAGS = {"script", "style", "noscript", "template"}


class _CollectingParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1

    def handle_endtag(self, tag: str) -> None:
        if tag in _SKIPPED_TAGS and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        if data.strip():
            self._parts.append(data.strip())

    def get_text(self) -> str:
        text = " ".join(" ".join(self._parts).split())
        self._parts.clear()
        return text


class HtmlExtractor(TextExtractor):
    """Strips post markup and block comments using Python's built-in parser."""

    def extract(self, source: bytes | str) -> str:
        if isinstance(source, bytes):
            raw = source.decode("utf-8", errors="ignore")
        else:
            raw = source
        parser = _CollectingParser()
        parser.feed(raw)
        parser.close()
        return parser.get_text()


__all__ = ["HtmlExtractor"]
