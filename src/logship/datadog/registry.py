"""
Registry of in-flight deliveries.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future


class PendingTaskRegistry:
    """Append-only, thread-safe collection of delivery futures.

    Completed futures are not pruned; the drain filters them out.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles: list[Future] = []

    def add(self, handle: Future) -> None:
        with self._lock:
            self._handles.append(handle)

    def snapshot(self) -> tuple[Future, ...]:
        with self._lock:
            return tuple(self._handles)

    def pending(self) -> list[Future]:
        return [handle for handle in self.snapshot() if not handle.done()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
