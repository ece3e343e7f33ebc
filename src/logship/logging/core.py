"""
Logging pipeline: structlog processors fanning out to a set of sinks.

Each ``LoggingPipeline`` owns its sinks and builds its own loggers, so two
pipelines (e.g. in tests) never share state. ``configure_logging`` and
``get_logger`` keep one default pipeline for applications that want it.
"""

from __future__ import annotations

import bisect
import logging
import sys
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, Optional

import structlog
from structlog.typing import EventDict, WrappedLogger

from logship.datadog.diagnostics import DiagnosticHook, StderrDiagnostics, report
from logship.datadog.events import render_template
from logship.datadog.exceptions import ConfigurationError, LogShipError

from .formatters import ConsoleFormatter
from .sinks import BaseSink, FileSink, LogFormat, StdioSink

if TYPE_CHECKING:
    from logship.config.datadog import DatadogSettings
    from logship.config.logging import LoggingSettings
    from logship.datadog.client import DeliveryClient
    from logship.datadog.sink import DatadogSink

VERBOSE = 5

_LEVELS = {
    "verbose": VERBOSE,
    "trace": VERBOSE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_STDLIB_METHODS = {
    VERBOSE: "verbose",
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}
_SORTED_LEVELS = sorted(_STDLIB_METHODS)


def level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return _LEVELS.get(str(getattr(level, "value", level)).strip().lower(), logging.INFO)


# =============================================================================
# Bound Logger
# =============================================================================


class TemplateBoundLogger(structlog.BoundLoggerBase):
    """Bound logger whose positional args fill ``{placeholders}`` in the message.

    ``log.info("user {id} logged in", 42, request_id="r1")``
    """

    def verbose(self, event: str, *args: Any, **kw: Any) -> Any:
        return self._proxy_to_logger("verbose", event, _args=args, **kw)

    def debug(self, event: str, *args: Any, **kw: Any) -> Any:
        return self._proxy_to_logger("debug", event, _args=args, **kw)

    def info(self, event: str, *args: Any, **kw: Any) -> Any:
        return self._proxy_to_logger("info", event, _args=args, **kw)

    def warning(self, event: str, *args: Any, **kw: Any) -> Any:
        return self._proxy_to_logger("warning", event, _args=args, **kw)

    warn = warning

    def error(self, event: str, *args: Any, **kw: Any) -> Any:
        return self._proxy_to_logger("error", event, _args=args, **kw)

    def exception(self, event: str, *args: Any, **kw: Any) -> Any:
        kw.setdefault("exc_info", True)
        return self._proxy_to_logger("exception", event, _args=args, **kw)

    def fatal(self, event: str, *args: Any, **kw: Any) -> Any:
        return self._proxy_to_logger("fatal", event, _args=args, **kw)

    critical = fatal

    def log(self, level: int, event: str, *args: Any, **kw: Any) -> Any:
        """Log at a stdlib numeric level."""
        method = _STDLIB_METHODS.get(level)
        if method is None:
            # nearest known level at or below; anything under VERBOSE is verbose
            index = max(bisect.bisect_right(_SORTED_LEVELS, level) - 1, 0)
            method = _STDLIB_METHODS[_SORTED_LEVELS[index]]
        return getattr(self, method)(event, *args, **kw)


class _DiscardLogger:
    """Terminal logger; the multi-sink renderer has already written the event."""

    def __getattr__(self, name: str) -> Any:
        return _discard


def _discard(*args: Any, **kwargs: Any) -> None:
    return None


# =============================================================================
# Structlog Processors
# =============================================================================


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO 8601 UTC timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add logger name to log event."""
    event_dict["logger"] = event_dict.pop("_name", "root")
    return event_dict


def render_message_template(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Merge positional args into the message, keeping the template alongside."""
    args = event_dict.pop("_args", ())
    if args:
        template = str(event_dict.get("event", ""))
        event_dict["message_template"] = template
        event_dict["message_args"] = tuple(args)
        event_dict["event"] = render_template(template, args)
    return event_dict


def rename_event_key(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename 'event' to 'message'."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


# =============================================================================
# Pipeline
# =============================================================================


class LoggingPipeline:
    """A set of sinks plus the processor chain feeding them.

    Args:
        level: Minimum level name or stdlib number.
        sinks: Initial local sinks.
        on_diagnostic: Where the pipeline and its sinks report their own
            failures. Defaults to one line on stderr.
    """

    def __init__(
        self,
        *,
        level: str | int = "DEBUG",
        sinks: Iterable[BaseSink] = (),
        on_diagnostic: Optional[DiagnosticHook] = None,
    ):
        self._min_level = level_number(level)
        self._sinks: list[BaseSink] = list(sinks)
        self._on_diagnostic: DiagnosticHook = on_diagnostic or StderrDiagnostics()
        self._lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._initialized = False
        self._closed = False
        self._datadog: DatadogSink | None = None
        self._processors = [
            self._filter_by_level,
            structlog.stdlib.add_log_level,
            add_timestamp,
            add_logger_name,
            render_message_template,
            rename_event_key,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            self._render_to_sinks,
        ]

    @classmethod
    def from_settings(
        cls,
        logging_settings: "LoggingSettings | None" = None,
        *,
        file_path: Optional[str] = None,
        on_diagnostic: Optional[DiagnosticHook] = None,
    ) -> "LoggingPipeline":
        """Build a pipeline with the local sinks named in settings.

        ``file_path`` adds a file sink even if ``file`` is not listed.
        """
        if logging_settings is None:
            from logship.config import settings

            logging_settings = settings.logging

        ConsoleFormatter.configure(
            timestamp_format=logging_settings.console_timestamp_format,
            level_width=logging_settings.console_level_width,
            logger_width=logging_settings.console_logger_width,
            separator=logging_settings.console_separator,
        )

        fmt: LogFormat = "json" if logging_settings.format.value == "json" else "console"
        names = [s.strip().lower() for s in logging_settings.sinks.split(",") if s.strip()]
        sinks: list[BaseSink] = []
        for name in names:
            if name == "stdio":
                sinks.append(StdioSink(fmt=fmt, stream=sys.stdout))
            elif name == "file":
                sinks.append(
                    FileSink(
                        file_path or logging_settings.file_path,
                        max_bytes=logging_settings.file_max_bytes,
                        backup_count=logging_settings.file_backup_count,
                    )
                )
        if file_path and "file" not in names:
            sinks.append(
                FileSink(
                    file_path,
                    max_bytes=logging_settings.file_max_bytes,
                    backup_count=logging_settings.file_backup_count,
                )
            )

        return cls(level=logging_settings.level.value, sinks=sinks, on_diagnostic=on_diagnostic)

    @property
    def sinks(self) -> tuple[BaseSink, ...]:
        return tuple(self._sinks)

    @property
    def datadog(self) -> "DatadogSink | None":
        return self._datadog

    @property
    def remote_active(self) -> bool:
        return self._datadog is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def add_sink(self, sink: BaseSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def get_logger(self, name: str | None = None, **initial_values: Any) -> TemplateBoundLogger:
        """Get a structured logger bound to this pipeline."""
        return structlog.wrap_logger(
            _DiscardLogger(),
            processors=self._processors,
            wrapper_class=TemplateBoundLogger,
            context_class=dict,
            cache_logger_on_first_use=True,
            _name=name or "root",
            **initial_values,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(
        self,
        datadog_settings: "DatadogSettings | None" = None,
        *,
        client: "DeliveryClient | None" = None,
    ) -> bool:
        """Attach the Datadog sink. Returns True only when remote shipping is active.

        Without an API key the pipeline keeps logging locally and returns
        False. Repeated calls return the current state.
        """
        from logship.datadog.sink import DatadogSink

        with self._lock:
            if self._initialized:
                return self._datadog is not None
            self._initialized = True

            if datadog_settings is None:
                from logship.config import settings

                datadog_settings = settings.datadog

            try:
                sink = DatadogSink(datadog_settings, client=client, on_diagnostic=self._on_diagnostic)
            except ConfigurationError:
                return False
            except Exception as exc:
                report(
                    self._on_diagnostic,
                    LogShipError(f"Error initializing Datadog sink: {exc}", code="INITIALIZATION_FAILED"),
                )
                return False

            self._datadog = sink
            self._sinks.append(sink)

        self.get_logger("logship").info(
            "Datadog log shipping initialized",
            service=sink.identity.service,
            env=sink.identity.env,
        )
        return True

    def initialize_basic(self) -> bool:
        """Local sinks only; Datadog shipping stays off for this pipeline."""
        with self._lock:
            self._initialized = True
        self.get_logger("logship").debug("Basic logging initialized")
        return True

    def close(self) -> None:
        """Close every sink once. Blocks while the Datadog sink drains."""
        with self._close_lock:
            if self._closed:
                return
            self.get_logger("logship").debug("Closing and flushing logs")
            with self._lock:
                self._closed = True
                sinks = list(self._sinks)

            for sink in sinks:
                try:
                    sink.close()
                except Exception as exc:
                    report(
                        self._on_diagnostic,
                        LogShipError(f"Error closing {type(sink).__name__}: {exc}", code="SINK_CLOSE_FAILED"),
                    )

    def install(self) -> None:
        """Route stdlib ``logging`` through this pipeline."""
        from .interceptors import RedirectStdLibHandler, quarantine_transport_loggers

        root_logger = logging.getLogger()
        root_logger.handlers = [h for h in root_logger.handlers if not isinstance(h, RedirectStdLibHandler)]
        root_logger.setLevel(self._min_level)
        root_logger.addHandler(RedirectStdLibHandler(self))

        quarantine_transport_loggers()

    # -------------------------------------------------------------------------
    # Processors bound to this pipeline
    # -------------------------------------------------------------------------

    def _filter_by_level(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        if _LEVELS.get(method_name, logging.INFO) < self._min_level:
            raise structlog.DropEvent
        return event_dict

    def _render_to_sinks(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        """Render log to all sinks. Returns empty to suppress default output."""
        if self._closed:
            return ""
        for sink in tuple(self._sinks):
            try:
                sink.emit(event_dict)
            except Exception as exc:
                report(
                    self._on_diagnostic,
                    LogShipError(f"Error in {type(sink).__name__}: {exc}", code="SINK_FAILED"),
                )
        return ""


# =============================================================================
# Default Pipeline
# =============================================================================

_default: LoggingPipeline | None = None
_default_lock = threading.Lock()


def configure_logging(
    logging_settings: "LoggingSettings | None" = None,
    datadog_settings: "DatadogSettings | None" = None,
    *,
    file_path: Optional[str] = None,
    install: bool = True,
) -> LoggingPipeline:
    """Build, initialize and install the default pipeline, replacing any previous one."""
    global _default

    pipeline = LoggingPipeline.from_settings(logging_settings, file_path=file_path)
    pipeline.initialize(datadog_settings)
    if install:
        pipeline.install()

    with _default_lock:
        previous, _default = _default, pipeline
    if previous is not None:
        previous.close()
    return pipeline


def get_logger(name: str | None = None, **initial_values: Any) -> TemplateBoundLogger:
    """Logger from the default pipeline (stdout-only until configured)."""
    global _default

    with _default_lock:
        if _default is None:
            _default = LoggingPipeline(sinks=[StdioSink()])
        pipeline = _default
    return pipeline.get_logger(name, **initial_values)


def shutdown_logging() -> None:
    """Close the default pipeline, draining remote deliveries."""
    global _default

    with _default_lock:
        pipeline, _default = _default, None
    if pipeline is not None:
        pipeline.close()
