"""
Severity mapping: internal log levels -> Datadog status tags.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Literal, Union

DatadogLevel = Literal["debug", "info", "warn", "error", "fatal"]

DEFAULT_LEVEL: DatadogLevel = "info"


class Severity(str, Enum):
    """Internal severities, most verbose first."""

    VERBOSE = "verbose"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


_SEVERITY_MAP: dict[Severity, DatadogLevel] = {
    Severity.VERBOSE: "debug",
    Severity.DEBUG: "debug",
    Severity.INFO: "info",
    Severity.WARNING: "warn",
    Severity.ERROR: "error",
    Severity.FATAL: "fatal",
}

# Aliases produced by structlog method names and stdlib level names
_NAME_ALIASES: dict[str, Severity] = {
    "trace": Severity.VERBOSE,
    "verbose": Severity.VERBOSE,
    "debug": Severity.DEBUG,
    "info": Severity.INFO,
    "information": Severity.INFO,
    "warn": Severity.WARNING,
    "warning": Severity.WARNING,
    "error": Severity.ERROR,
    "exception": Severity.ERROR,
    "fatal": Severity.FATAL,
    "critical": Severity.FATAL,
}

_STDLIB_LEVELS: dict[int, Severity] = {
    5: Severity.VERBOSE,
    logging.DEBUG: Severity.DEBUG,
    logging.INFO: Severity.INFO,
    logging.WARNING: Severity.WARNING,
    logging.ERROR: Severity.ERROR,
    logging.CRITICAL: Severity.FATAL,
}


def to_severity(level: Union[Severity, str, int, None]) -> Severity | None:
    """Normalize a level given as enum, name or stdlib number. None if unknown."""
    if isinstance(level, Severity):
        return level
    if isinstance(level, bool):
        return None
    if isinstance(level, int):
        return _STDLIB_LEVELS.get(level)
    if isinstance(level, str):
        return _NAME_ALIASES.get(level.strip().lower())
    return None


def map_level(level: Union[Severity, str, int, None]) -> DatadogLevel:
    """Map any level to a Datadog status tag. Unknown levels become ``info``."""
    severity = to_severity(level)
    if severity is None:
        return DEFAULT_LEVEL
    return _SEVERITY_MAP[severity]
