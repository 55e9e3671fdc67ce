"""
Cooperative cancellation shared by all pipeline stages.
"""

from __future__ import annotations

import threading


class CancellationToken:
    """
    One-shot stop signal passed to every stage worker.

    Stages poll ``cancelled`` at the top of each loop iteration. The first
    call to ``cancel`` records the reason; later calls are no-ops.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """Request a stop. Returns True if this call triggered it."""
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            return True

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        state = f"cancelled: {self._reason}" if self.cancelled else "active"
        return f"CancellationToken({state})"
