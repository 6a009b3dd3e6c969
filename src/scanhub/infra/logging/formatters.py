from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter


# Attributes every LogRecord carries; anything else arrived through `extra`.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(JsonFormatter):
    """JSON-lines formatter for scan events.

    Structured fields passed via ``extra`` are emitted at the top level next
    to the event name.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['event'] = record.getMessage()
        log_record['time'] = self.formatTime(record)


class HumanReadableFormatter(logging.Formatter):
    """Console formatter: event name followed by its structured fields."""

    def __init__(self) -> None:
        super().__init__(
            fmt='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        if fields:
            rendered = " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
            line = f"{line} | {rendered}"
        return line
