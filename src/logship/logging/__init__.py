"""
Structured logging for logship.

Provides structured logging with multiple sink support:
- stdio: Standard output (console/json format)
- file: Local file rotation with JSON
- datadog: Asynchronous Datadog HTTP intake (see ``logship.datadog``)

Design Pattern: Strategy Pattern for sink abstraction.
Library: structlog + orjson for high-performance JSON serialization.
"""

from .core import (
    LoggingPipeline,
    TemplateBoundLogger,
    configure_logging,
    get_logger,
    shutdown_logging,
)
from .sinks import BaseSink, FileSink, StdioSink

__all__ = [
    "BaseSink",
    "FileSink",
    "LoggingPipeline",
    "StdioSink",
    "TemplateBoundLogger",
    "configure_logging",
    "get_logger",
    "shutdown_logging",
]
