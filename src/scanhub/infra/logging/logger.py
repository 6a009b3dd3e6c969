from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dependency_injector.resources import Resource

from .handlers import build_json_file_handler, build_human_console_handler


class ScanLogger(Resource):
    """Structured logger for the scan pipeline.

    Wraps a stdlib logger; keyword arguments on each call become structured
    fields. Optionally writes JSON lines to ``<logs_dir>/scanhub.jsonl``
    and human-readable lines to the console.
    """

    def init(
        self,
        *,
        logs_dir: Path | None = None,
        logger_name: str = "scanhub",
        console_output: bool = False,
        file_output: bool = False,
        level: str = "INFO",
    ) -> "ScanLogger":
        """Initialize logger handlers.

        Args:
            logs_dir: Directory for the JSONL log file (required when file_output is set)
            logger_name: Logger name
            console_output: Whether to enable console output
            file_output: Whether to append JSON lines to a log file
            level: Logging level (DEBUG, INFO, WARNING, ERROR)

        Returns:
            Self for dependency_injector Resource pattern
        """
        numeric_level = getattr(logging, level.upper(), logging.INFO)
        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(numeric_level)
        self._logger.propagate = False

        self._logger.handlers.clear()
        self._handlers: list[logging.Handler] = []

        if file_output and logs_dir is not None:
            file_handler = build_json_file_handler(logs_dir / f"{logger_name}.jsonl", level=numeric_level)
            self._logger.addHandler(file_handler)
            self._handlers.append(file_handler)

        if console_output:
            console_handler = build_human_console_handler(level=numeric_level)
            self._logger.addHandler(console_handler)
            self._handlers.append(console_handler)

        if not self._handlers:
            self._logger.addHandler(logging.NullHandler())

        return self

    def shutdown(self, resource: "ScanLogger") -> None:
        """Flush and close all handlers so log files are released."""
        for handler in self._handlers:
            handler.flush()
            handler.close()
        self._logger.handlers.clear()

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, extra=kwargs or None)

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, extra=kwargs or None)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, extra=kwargs or None)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._logger.error(message, extra=kwargs or None, exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        self._logger.exception(message, extra=kwargs or None)
