"""Logging for patrol runs: a DI-managed logger plus its handlers."""

from __future__ import annotations

from .formatters import HumanReadableFormatter, JSONFormatter, record_extras
from .handlers import build_human_console_handler, build_json_file_handler
from .logger import PatrolLogger

__all__ = [
    "PatrolLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "record_extras",
    "build_human_console_handler",
    "build_json_file_handler",
]
