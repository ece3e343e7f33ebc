"""
Local diagnostic channel.

The sink reports its own failures here instead of through the logging
pipeline it serves; a failed shipment must not produce another log entry.
"""

from __future__ import annotations

import sys
from typing import Any, Callable

from .exceptions import LogShipError

DiagnosticHook = Callable[[LogShipError], None]


def noop_diagnostics(error: LogShipError) -> None:
    pass


class StderrDiagnostics:
    """Write one line per diagnostic straight to a stream (default: stderr).

    Args:
        stream: Target stream. Resolved at call time when omitted, so test
            capture of ``sys.stderr`` keeps working.
        prefix: Tag prepended to every line.
    """

    def __init__(self, stream: Any = None, prefix: str = "[logship]"):
        self._stream = stream
        self._prefix = prefix

    def __call__(self, error: LogShipError) -> None:
        stream = self._stream or sys.stderr
        stream.write(f"{self._prefix} {error.code}: {error.message}\n")
        stream.flush()


def report(hook: DiagnosticHook, error: LogShipError) -> None:
    """Invoke a hook, ignoring anything it raises."""
    try:
        hook(error)
    except Exception:
        pass
