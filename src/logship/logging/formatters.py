"""
Console rendering for local log output.
"""

from __future__ import annotations

from datetime import datetime, timezone
from structlog.typing import EventDict

# =============================================================================
# Console Formatter (Aligned Columns)
# =============================================================================

_RESET = "\x1b[0m"

COLORS = {
    "dim": "\x1b[2m",
    "timestamp": "\x1b[90m",
    "logger": "\x1b[35m",
    "key": "\x1b[34m",
}

LEVEL_COLORS = {
    "VERBOSE": "\x1b[2;36m",
    "DEBUG": "\x1b[36m",
    "INFO": "\x1b[32m",
    "WARNING": "\x1b[33m",
    "ERROR": "\x1b[31m",
    "FATAL": "\x1b[1;31m",
    "CRITICAL": "\x1b[1;31m",
}


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text."""
    code = COLORS.get(color) or LEVEL_COLORS.get(color, "")
    if not code:
        return text
    return f"{code}{text}{_RESET}"


class ConsoleFormatter:
    """Renders ``timestamp | LEVEL | logger | message key=value`` lines."""

    EXCLUDED_KEYS = {"level", "message", "event", "logger", "timestamp", "message_template", "message_args"}
    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
    TIMESTAMP_WIDTH = 19
    LEVEL_WIDTH = 8
    LOGGER_WIDTH = 32
    SEPARATOR = " | "

    @classmethod
    def configure(
        cls,
        *,
        timestamp_format: str | None = None,
        level_width: int | None = None,
        logger_width: int | None = None,
        separator: str | None = None,
    ) -> None:
        """Configure alignment and rendering parameters."""
        if timestamp_format:
            cls.TIMESTAMP_FORMAT = timestamp_format
            cls.TIMESTAMP_WIDTH = len(datetime.now().strftime(timestamp_format))
        if level_width:
            cls.LEVEL_WIDTH = level_width
        if logger_width:
            cls.LOGGER_WIDTH = logger_width
        if separator is not None:
            cls.SEPARATOR = separator

    @staticmethod
    def _fit_right(text: str, width: int) -> str:
        if width <= 0:
            return text
        if len(text) > width:
            if width <= 3:
                text = text[-width:]
            else:
                text = "..." + text[-(width - 3) :]
        return f"{text:>{width}}"

    @classmethod
    def _format_timestamp(cls, raw_timestamp: str | None) -> str:
        if raw_timestamp:
            try:
                dt = datetime.fromisoformat(str(raw_timestamp).replace("Z", "+00:00"))
                if dt.tzinfo is None:
                    dt = dt.replace(tzinfo=timezone.utc)
                return dt.astimezone().strftime(cls.TIMESTAMP_FORMAT)
            except (ValueError, TypeError):
                pass
        return datetime.now().strftime(cls.TIMESTAMP_FORMAT)

    @classmethod
    def format(cls, event_dict: EventDict, *, use_color: bool = True) -> str:
        """Format an event dict into an aligned string."""

        def paint(text: str, color: str) -> str:
            return colorize(text, color) if use_color else text

        level_upper = str(event_dict.get("level", "info")).upper()
        message_text = str(event_dict.get("message", event_dict.get("event", "")))

        extras = [
            f"{paint(str(k), 'key')}={paint(str(v), 'dim')}"
            for k, v in event_dict.items()
            if k not in cls.EXCLUDED_KEYS
        ]
        if extras:
            message_text = f"{message_text} " + " ".join(extras)

        return cls.SEPARATOR.join(
            [
                paint(cls._fit_right(cls._format_timestamp(event_dict.get("timestamp")), cls.TIMESTAMP_WIDTH), "timestamp"),
                paint(cls._fit_right(level_upper, cls.LEVEL_WIDTH), level_upper),
                paint(cls._fit_right(str(event_dict.get("logger", "root")), cls.LOGGER_WIDTH), "logger"),
                message_text,
            ]
        )
