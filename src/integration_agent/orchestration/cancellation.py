"""Cooperative cancellation for agent runs."""

import threading
import time

from .errors import Cancelled


class CancellationToken:
    """Flag checked by the orchestrator between blocking steps.

    A token trips either when ``cancel()`` is called (from any thread) or when
    its optional monotonic deadline passes.
    """

    def __init__(self, deadline: float | None = None):
        self._event = threading.Event()
        self._deadline = deadline
        self._reason = "run cancelled"

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "run cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self._reason)
        if self.cancelled:
            raise Cancelled("run deadline exceeded")
