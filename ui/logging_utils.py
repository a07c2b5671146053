"""Утилиты для настройки логирования приложения."""
from __future__ import annotations

import logging
import os
from pathlib import Path


def setup_logging() -> None:
    """Настроить логирование в файл и консоль."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level_name = os.getenv("CONTEXTRETRIEVAL_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    log_file = os.getenv("CONTEXTRETRIEVAL_LOG_FILE", "contextretrieval.log")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    # Пустое значение отключает запись в файл.
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)
    # urllib3 пишет каждое соединение на DEBUG.
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
