"""
Interceptors for capturing standard library and third-party logs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .core import LoggingPipeline

# Loggers that must never feed back into the pipeline: the Datadog sink's own
# HTTP traffic would otherwise generate a log entry per shipped log entry.
TRANSPORT_LOGGERS = ("httpx", "httpcore", "hpack", "h2")


class RedirectStdLibHandler(logging.Handler):
    """
    Redirect standard library logging events into a LoggingPipeline, so
    third-party logs pass through the same sinks as our own.
    """

    def __init__(self, pipeline: "LoggingPipeline", level: int = logging.NOTSET):
        super().__init__(level)
        self._pipeline = pipeline

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if self._is_quarantined(record.name):
                return

            # stdlib formatting handles %s args
            msg = record.getMessage()
            logger = self._pipeline.get_logger(self._simplify_logger_name(record.name))
            if record.exc_info:
                logger.log(record.levelno, msg, exc_info=record.exc_info)
            else:
                logger.log(record.levelno, msg)
        except Exception:
            self.handleError(record)

    @staticmethod
    def _is_quarantined(name: str) -> bool:
        return any(name == root or name.startswith(root + ".") for root in TRANSPORT_LOGGERS)

    @staticmethod
    def _simplify_logger_name(name: str) -> str:
        """
        Simplify a logger name for display.

        - "" -> "stdlib"
        - "uvicorn.access" -> "uvicorn.access"
        - "a.b.c.d" -> "c.d"
        """
        if not name:
            return "stdlib"
        parts = name.split(".")
        if len(parts) <= 2:
            return name
        return ".".join(parts[-2:])


def quarantine_transport_loggers() -> None:
    """Detach HTTP client loggers from the root so they cannot reach the pipeline."""
    for name in TRANSPORT_LOGGERS:
        lg = logging.getLogger(name)
        lg.propagate = False
        lg.setLevel(logging.WARNING)
