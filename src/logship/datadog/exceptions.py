"""
Error taxonomy for the Datadog sink.

Delivery-time errors are never raised to callers. They are built as values
and handed to the diagnostic hook, so the hierarchy doubles as the payload
type of the diagnostic channel.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LogShipError(Exception):
    """Root of every logship error."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(LogShipError):
    """Sink cannot be activated with the given configuration (e.g. no API key)."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", details={"field": field} if field else None)


# ================================
# Delivery errors
# ================================


class DeliveryError(LogShipError):
    """A single delivery did not reach the intake."""

    pass


class DeliveryTimeout(DeliveryError):
    def __init__(self, *, timeout: float) -> None:
        super().__init__(
            f"Timeout sending log to Datadog after {timeout:g}s",
            code="DELIVERY_TIMEOUT",
            details={"timeout": timeout},
        )


class DeliveryNetworkError(DeliveryError):
    def __init__(self, detail: str) -> None:
        super().__init__(
            f"Error sending log to Datadog: {detail}",
            code="DELIVERY_NETWORK_ERROR",
            details={"detail": detail},
        )


class RemoteRejected(DeliveryError):
    """The intake answered with a non-success status."""

    def __init__(self, *, status: int, body: str = "") -> None:
        super().__init__(
            f"Failed to send log to Datadog: HTTP {status}",
            code="REMOTE_REJECTED",
            details={"status": status, "body": body},
        )
        self.status = status
        self.body = body


# ================================
# Shutdown
# ================================


class ShutdownTimeoutWarning(LogShipError, UserWarning):
    """Drain budget elapsed while deliveries were still outstanding."""

    def __init__(self, *, outstanding: int, timeout: float) -> None:
        super().__init__(
            f"Timeout waiting for logs to be sent to Datadog: {outstanding} still pending after {timeout:g}s",
            code="SHUTDOWN_TIMEOUT",
            details={"outstanding": outstanding, "timeout": timeout},
        )
        self.outstanding = outstanding
        self.timeout = timeout
