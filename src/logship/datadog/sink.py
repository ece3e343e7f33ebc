"""
Datadog sink: fire-and-forget dispatch with a bounded drain on close.

    emit/submit --> ThreadPoolExecutor --> build_payload -> client.deliver
         |
         +--> PendingTaskRegistry  <-- DrainCoordinator (close)
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Any, Optional

from structlog.typing import EventDict

from logship.config.datadog import DatadogSettings
from logship.logging.sinks import BaseSink

from .client import DeliveryClient, DeliveryOutcome, HttpDeliveryClient
from .diagnostics import DiagnosticHook, noop_diagnostics, report
from .drain import DrainCoordinator, DrainReport
from .events import LogEvent, SinkIdentity, build_payload
from .exceptions import ConfigurationError, LogShipError
from .registry import PendingTaskRegistry


class SinkState(str, Enum):
    ACTIVE = "active"
    DRAINING = "draining"
    CLOSED = "closed"


class DatadogSink(BaseSink):
    """Ship log events to Datadog without blocking the logging thread.

    Construction requires an API key (``ConfigurationError`` otherwise).
    ``emit``/``submit`` never block on I/O and never raise; ``close`` waits
    for outstanding deliveries up to ``drain_timeout`` and is idempotent.

    Args:
        settings: Sink configuration.
        client: Delivery client; an ``HttpDeliveryClient`` is built when omitted.
        identity: Payload identity; resolved from ``settings`` when omitted.
        on_diagnostic: Receives delivery errors and shutdown timeouts.
        executor: Worker pool; the sink owns and shuts it down either way.
    """

    def __init__(
        self,
        settings: DatadogSettings,
        *,
        client: Optional[DeliveryClient] = None,
        identity: Optional[SinkIdentity] = None,
        on_diagnostic: DiagnosticHook = noop_diagnostics,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        if not settings.enabled:
            raise ConfigurationError("Datadog API key is required", field="api_key")

        self._settings = settings
        self._on_diagnostic = on_diagnostic
        self._identity = identity or SinkIdentity.from_settings(settings)
        self._client = client or HttpDeliveryClient.from_settings(settings, on_diagnostic=on_diagnostic)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.max_workers,
            thread_name_prefix="logship-datadog",
        )
        self._registry = PendingTaskRegistry()
        self._drain = DrainCoordinator(
            self._registry,
            self._release,
            timeout=settings.drain_timeout,
            on_diagnostic=on_diagnostic,
        )

        self._state = SinkState.ACTIVE
        self._state_lock = threading.Lock()
        self._close_lock = threading.Lock()

    @property
    def state(self) -> SinkState:
        return self._state

    @property
    def identity(self) -> SinkIdentity:
        return self._identity

    @property
    def registry(self) -> PendingTaskRegistry:
        return self._registry

    @property
    def drain_report(self) -> DrainReport | None:
        return self._drain.report

    def submit(self, event: LogEvent) -> Future[DeliveryOutcome] | None:
        """Dispatch one event. Returns its handle, or None once not active."""
        with self._state_lock:
            if self._state is not SinkState.ACTIVE:
                return None
            try:
                handle = self._executor.submit(self._deliver, event)
            except RuntimeError:
                # pool already shut down underneath us
                return None
            self._registry.add(handle)
            return handle

    def emit(self, event_dict: EventDict) -> None:
        try:
            event = LogEvent.from_event_dict(event_dict)
        except Exception as exc:
            report(self._on_diagnostic, LogShipError(f"Unreadable log event: {exc}", code="BAD_EVENT"))
            return
        self.submit(event)

    def _deliver(self, event: LogEvent) -> DeliveryOutcome:
        try:
            return self._client.deliver(build_payload(event, self._identity))
        except Exception as exc:
            outcome = DeliveryOutcome.network_error(f"{type(exc).__name__}: {exc}")
            report(self._on_diagnostic, outcome.error)
            return outcome

    def close(self) -> None:
        with self._close_lock:
            with self._state_lock:
                if self._state is not SinkState.ACTIVE:
                    return
                self._state = SinkState.DRAINING
            try:
                self._drain.drain()
            finally:
                with self._state_lock:
                    self._state = SinkState.CLOSED

    def _release(self) -> None:
        try:
            self._client.close()
        except Exception as exc:
            report(
                self._on_diagnostic,
                LogShipError(f"Error closing Datadog client: {exc}", code="RELEASE_FAILED"),
            )
        finally:
            self._executor.shutdown(wait=False)

    def __enter__(self) -> "DatadogSink":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
