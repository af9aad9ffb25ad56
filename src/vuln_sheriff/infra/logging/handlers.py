from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import IO

from .formatters import HumanReadableFormatter, JSONFormatter


def _configured(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def build_json_file_handler(path: Path, level: int = logging.INFO) -> logging.Handler:
    """JSON Lines file handler; missing parent directories are created."""
    path.parent.mkdir(parents=True, exist_ok=True)
    return _configured(logging.FileHandler(path, encoding="utf-8"), level, JSONFormatter())


def build_human_console_handler(level: int = logging.INFO, stream: IO[str] | None = None) -> logging.Handler:
    # stdout carries the console report
    return _configured(logging.StreamHandler(stream or sys.stderr), level, HumanReadableFormatter())
