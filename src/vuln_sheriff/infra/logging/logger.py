from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from dependency_injector.resources import Resource

from .formatters import RECORD_ATTRS
from .handlers import build_human_console_handler, build_json_file_handler


class PatrolLogger(Resource):
    """Structured logger of one patrol run.

    Keyword arguments of the logging methods become record extras; a key
    that collides with a LogRecord attribute is stored as ``field_<key>``.
    The resource owns the handlers it attaches and detaches them on
    shutdown.
    """

    log_file: Path | None = None

    def init(
        self,
        *,
        logs_dir: Path,
        logger_name: str = "vuln_sheriff",
        console_output: bool = True,
        json_file: bool = False,
        level: str = "INFO",
    ) -> "PatrolLogger":
        """Attach the configured handlers to the named logger.

        Raises:
            ValueError: Unknown level name.
        """
        levels = logging.getLevelNamesMapping()
        if level.upper() not in levels:
            raise ValueError(f"unknown log level {level!r}")
        lvl = levels[level.upper()]

        self._handlers: list[logging.Handler] = []
        if json_file:
            self.log_file = logs_dir / f"patrol-{datetime.now():%Y%m%d-%H%M%S}.jsonl"
            self._handlers.append(build_json_file_handler(self.log_file, lvl))
        if console_output:
            self._handlers.append(build_human_console_handler(lvl))

        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(lvl)
        self._logger.propagate = False
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
        for handler in self._handlers:
            self._logger.addHandler(handler)
        return self

    def shutdown(self, resource: "PatrolLogger") -> None:
        for handler in self._handlers:
            self._logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def _log(self, level: int, message: str, fields: dict[str, Any], exc_info: bool = False) -> None:
        extra = {f"field_{k}" if k in RECORD_ATTRS else k: v for k, v in fields.items()}
        # stacklevel points funcName/lineno at the calling service
        self._logger.log(level, message, extra=extra or None, exc_info=exc_info, stacklevel=3)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs, exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs, exc_info=True)
