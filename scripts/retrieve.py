"""Выполнить один запрос поиска контекста и вывести результат в JSON."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from application.retrieval.response import dump_result
from application.use_cases.retrieve_context import retrieve_context
from domain.errors import ConfigurationError, UpstreamError, ValidationError
from infrastructure.config import AppConfig, build_default_container
from ui.logging_utils import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--request-file",
        type=Path,
        help="JSON-файл с телом запроса. Остальные флаги переопределяют его поля.",
    )
    parser.add_argument("--section-id", dest="sectionId", help="Идентификатор секции (section-...)")
    parser.add_argument("--query", help="Текст запроса (10-500 символов)")
    parser.add_argument(
        "--namespace",
        action="append",
        dest="namespaces",
        help="Пространство имён: content, products, docs, knowledge. Можно передавать несколько раз.",
    )
    parser.add_argument("-k", type=int, dest="k", help="Сколько чанков вернуть (1-50)")
    parser.add_argument("--min-score", type=float, dest="min_score", help="Минимальная релевантность (0.0-1.0)")
    parser.add_argument(
        "--license",
        action="append",
        dest="licenses",
        help="Разрешённая лицензия. Можно передавать несколько раз.",
    )
    parser.add_argument("--language", help="Код языка ISO-639-1")
    parser.add_argument("--timeout", type=float, help="Таймаут запроса к поисковому сервису, секунды")
    parser.add_argument("--indent", type=int, default=None, help="Отступ JSON-вывода")
    return parser.parse_args(argv)


def build_payload(args: argparse.Namespace) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if args.request_file:
        payload = json.loads(args.request_file.read_text(encoding="utf-8"))
    for name in ("sectionId", "query", "namespaces", "k", "min_score"):
        value = getattr(args, name)
        if value is not None:
            payload[name] = value
    filters = dict(payload.get("filters") or {})
    if args.licenses:
        filters["license"] = args.licenses
    if args.language:
        filters["language"] = args.language
    if filters:
        payload["filters"] = filters
    return payload


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging()
    try:
        container = build_default_container(AppConfig.from_env())
        result = retrieve_context(
            build_payload(args),
            search_client=container.search_client,
            result_cache=container.result_cache,
            quality_settings=container.quality_settings,
            filter_options=container.filter_options,
            boost_table=container.boost_table,
            extractor=container.extractor,
            timeout=args.timeout if args.timeout is not None else container.timeout_seconds,
        )
    except ValidationError as exc:
        print(json.dumps({"error": "validation_error", "problems": [p.to_dict() for p in exc.problems]}), file=sys.stderr)
        return 2
    except UpstreamError as exc:
        print(json.dumps({"error": "upstream_error", "message": exc.message, "status": exc.status}), file=sys.stderr)
        return 3
    except ConfigurationError as exc:
        print(json.dumps({"error": "configuration_error", "message": str(exc)}), file=sys.stderr)
        return 4
    print(dump_result(result, indent=args.indent))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
