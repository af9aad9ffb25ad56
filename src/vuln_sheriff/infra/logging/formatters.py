"""Formatters shared by the console and JSONL handlers."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

# Attributes of a bare LogRecord plus those Formatter.format adds.
RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def record_extras(record: logging.LogRecord) -> dict[str, object]:
    """Fields attached through ``extra``, in the order they were passed."""
    return {k: v for k, v in vars(record).items() if k not in RECORD_ATTRS}


class JSONFormatter(JsonFormatter):
    """One JSON object per record; extras become top-level keys."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            level=record.levelname,
            logger=record.name,
            thread=record.threadName,
            message=record.getMessage(),
        )


class HumanReadableFormatter(logging.Formatter):
    """``time LEVEL [thread] message key=value ...`` for stderr."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s [%(threadName)s] %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        extras = record_extras(record)
        if not extras:
            return text
        # keep tracebacks below the first line
        first, newline, rest = text.partition("\n")
        fields = " ".join(f"{key}={value}" for key, value in extras.items())
        return f"{first} {fields}{newline}{rest}"
