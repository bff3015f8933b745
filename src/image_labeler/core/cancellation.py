"""Externally supplied cancellation signal for one invocation."""

import threading
import time
from typing import Any, Callable, Optional

from .exceptions import OperationCancelledError


class CancellationToken:
    """
    Fires when the caller cancels or when the invocation deadline passes.

    The pipeline checks the token before each step; a fired token turns the
    current step into an ``OperationCancelledError``.
    """

    def __init__(
        self,
        deadline: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._event = threading.Event()
        self._deadline = deadline
        self._clock = clock

    @classmethod
    def with_timeout(
        cls, seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> "CancellationToken":
        return cls(deadline=clock() + seconds, clock=clock)

    @classmethod
    def from_lambda_context(
        cls, context: Any, safety_margin_ms: int = 1000
    ) -> "CancellationToken":
        """Bind to a Lambda context's remaining time, minus a safety margin."""
        remaining = getattr(context, "get_remaining_time_in_millis", None)
        if remaining is None:
            return cls()
        budget_ms = max(remaining() - safety_margin_ms, 0)
        return cls.with_timeout(budget_ms / 1000.0)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self, operation: str = "") -> None:
        if self.cancelled:
            where = f" during {operation}" if operation else ""
            raise OperationCancelledError(f"Invocation cancelled{where}")
