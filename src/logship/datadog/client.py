"""
HTTP delivery to the Datadog intake.

One long-lived ``httpx.Client`` per sink carries the timeout and API key
header for every request. ``deliver`` never raises: each attempt ends in a
``DeliveryOutcome`` and every failure is also sent to the diagnostic hook.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

import httpx

from .diagnostics import DiagnosticHook, noop_diagnostics, report
from .events import DeliveryPayload
from .exceptions import (
    ConfigurationError,
    DeliveryError,
    DeliveryNetworkError,
    DeliveryTimeout,
    RemoteRejected,
)

if TYPE_CHECKING:
    from logship.config.datadog import DatadogSettings

API_KEY_HEADER = "DD-API-KEY"

_BODY_PREVIEW = 512


class OutcomeKind(str, Enum):
    DELIVERED = "delivered"
    REMOTE_REJECTED = "remote_rejected"
    TIMED_OUT = "timed_out"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Classified result of one delivery attempt."""

    kind: OutcomeKind
    status: Optional[int] = None
    detail: str = ""
    error: Optional[DeliveryError] = None

    @property
    def delivered(self) -> bool:
        return self.kind is OutcomeKind.DELIVERED

    @classmethod
    def ok(cls, status: int) -> "DeliveryOutcome":
        return cls(OutcomeKind.DELIVERED, status=status)

    @classmethod
    def rejected(cls, status: int, body: str) -> "DeliveryOutcome":
        return cls(
            OutcomeKind.REMOTE_REJECTED,
            status=status,
            detail=body,
            error=RemoteRejected(status=status, body=body),
        )

    @classmethod
    def timed_out(cls, timeout: float) -> "DeliveryOutcome":
        return cls(OutcomeKind.TIMED_OUT, error=DeliveryTimeout(timeout=timeout))

    @classmethod
    def network_error(cls, detail: str) -> "DeliveryOutcome":
        return cls(OutcomeKind.NETWORK_ERROR, detail=detail, error=DeliveryNetworkError(detail))


@runtime_checkable
class DeliveryClient(Protocol):
    """What the sink needs from a transport."""

    def deliver(self, payload: DeliveryPayload) -> DeliveryOutcome: ...

    def close(self) -> None: ...


def build_intake_url(template: str, api_key: str) -> str:
    if "{api_key}" in template:
        return template.replace("{api_key}", api_key)
    return template


class HttpDeliveryClient:
    """POST payloads to the intake over a single shared ``httpx.Client``.

    Args:
        api_key: Datadog API key.
        intake_url: URL template; ``{api_key}`` is substituted when present.
        timeout: Per-request timeout in seconds.
        send_api_key_header: Attach the key as the ``DD-API-KEY`` header.
        on_diagnostic: Receives a ``DeliveryError`` for every failed attempt.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str,
        intake_url: str,
        *,
        timeout: float = 10.0,
        send_api_key_header: bool = True,
        on_diagnostic: DiagnosticHook = noop_diagnostics,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not api_key or not api_key.strip():
            raise ConfigurationError("Datadog API key is required", field="api_key")

        headers = {"Content-Type": "application/json"}
        if send_api_key_header:
            headers[API_KEY_HEADER] = api_key

        self._url = build_intake_url(intake_url, api_key)
        self._timeout = timeout
        self._on_diagnostic = on_diagnostic
        self._client = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: "DatadogSettings",
        *,
        on_diagnostic: DiagnosticHook = noop_diagnostics,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "HttpDeliveryClient":
        if not settings.enabled:
            raise ConfigurationError("Datadog API key is required", field="api_key")
        return cls(
            settings.api_key.get_secret_value(),
            settings.intake_url,
            timeout=settings.request_timeout,
            send_api_key_header=settings.send_api_key_header,
            on_diagnostic=on_diagnostic,
            transport=transport,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def deliver(self, payload: DeliveryPayload) -> DeliveryOutcome:
        outcome = self._send(payload)
        if outcome.error is not None:
            report(self._on_diagnostic, outcome.error)
        return outcome

    def _send(self, payload: DeliveryPayload) -> DeliveryOutcome:
        try:
            response = self._client.post(self._url, content=payload.to_json())
        except httpx.TimeoutException:
            return DeliveryOutcome.timed_out(self._timeout)
        except httpx.HTTPError as exc:
            return DeliveryOutcome.network_error(str(exc) or type(exc).__name__)
        except Exception as exc:
            # e.g. RuntimeError once the client has been closed by a drain
            return DeliveryOutcome.network_error(f"{type(exc).__name__}: {exc}")

        if response.is_success:
            return DeliveryOutcome.ok(response.status_code)
        return DeliveryOutcome.rejected(response.status_code, response.text[:_BODY_PREVIEW])

    def close(self) -> None:
        self._client.close()
