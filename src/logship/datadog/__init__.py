"""
Asynchronous Datadog log sink.

Fire-and-forget HTTP delivery of log events to the Datadog intake, with a
bounded drain of in-flight deliveries when the sink is closed.
"""

from .client import DeliveryClient, DeliveryOutcome, HttpDeliveryClient, OutcomeKind
from .diagnostics import DiagnosticHook, StderrDiagnostics, noop_diagnostics
from .drain import DrainCoordinator, DrainReport
from .events import DeliveryPayload, LogEvent, SinkIdentity, build_payload, render_template
from .exceptions import (
    ConfigurationError,
    DeliveryError,
    DeliveryNetworkError,
    DeliveryTimeout,
    LogShipError,
    RemoteRejected,
    ShutdownTimeoutWarning,
)
from .levels import Severity, map_level
from .registry import PendingTaskRegistry
from .sink import DatadogSink, SinkState

__all__ = [
    "ConfigurationError",
    "DatadogSink",
    "DeliveryClient",
    "DeliveryError",
    "DeliveryNetworkError",
    "DeliveryOutcome",
    "DeliveryPayload",
    "DeliveryTimeout",
    "DiagnosticHook",
    "DrainCoordinator",
    "DrainReport",
    "HttpDeliveryClient",
    "LogEvent",
    "LogShipError",
    "OutcomeKind",
    "PendingTaskRegistry",
    "RemoteRejected",
    "Severity",
    "ShutdownTimeoutWarning",
    "SinkIdentity",
    "SinkState",
    "StderrDiagnostics",
    "build_payload",
    "map_level",
    "noop_diagnostics",
    "render_template",
]
