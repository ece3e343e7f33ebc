"""
Drain-on-close: wait for outstanding deliveries within a fixed budget,
then release resources.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import wait
from dataclasses import dataclass
from typing import Callable

from .diagnostics import DiagnosticHook, noop_diagnostics, report
from .exceptions import ShutdownTimeoutWarning
from .registry import PendingTaskRegistry


@dataclass(frozen=True)
class DrainReport:
    """What one drain observed."""

    waited_for: int
    completed: int
    outstanding: int
    elapsed: float

    @property
    def timed_out(self) -> bool:
        return self.outstanding > 0


class DrainCoordinator:
    """Waits on a registry snapshot, then runs ``release`` exactly once.

    A timed-out wait does not cancel anything: deliveries still running keep
    going in the background, their outcome unobservable to the closer.

    Args:
        registry: Source of delivery handles.
        release: Teardown callback (close the HTTP client, stop the pool).
        timeout: Total seconds to wait across all pending handles.
        on_diagnostic: Receives a ``ShutdownTimeoutWarning`` when the budget runs out.
    """

    def __init__(
        self,
        registry: PendingTaskRegistry,
        release: Callable[[], None],
        *,
        timeout: float = 30.0,
        on_diagnostic: DiagnosticHook = noop_diagnostics,
    ):
        self._registry = registry
        self._release = release
        self._timeout = timeout
        self._on_diagnostic = on_diagnostic
        self._report: DrainReport | None = None
        self._released = False
        self._lock = threading.Lock()

    @property
    def report(self) -> DrainReport | None:
        return self._report

    def drain(self) -> DrainReport:
        """Wait, then release. Repeated calls return the first report.

        A failing ``release`` propagates from the first call only; the report
        is recorded regardless and ``release`` is never retried.
        """
        with self._lock:
            if self._report is not None:
                return self._report

            started = time.monotonic()
            pending = self._registry.pending()
            outstanding = 0
            try:
                if pending:
                    _, not_done = wait(pending, timeout=self._timeout)
                    outstanding = len(not_done)
                    if not_done:
                        report(
                            self._on_diagnostic,
                            ShutdownTimeoutWarning(outstanding=outstanding, timeout=self._timeout),
                        )
            finally:
                try:
                    if not self._released:
                        self._released = True
                        self._release()
                finally:
                    self._report = DrainReport(
                        waited_for=len(pending),
                        completed=len(pending) - outstanding,
                        outstanding=outstanding,
                        elapsed=time.monotonic() - started,
                    )
            return self._report
