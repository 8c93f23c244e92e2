"""
Caller-supplied cancellation and deadline signal for adapter operations.
"""

import threading
import time
from typing import Optional

from .errors import OperationCancelled


class CancellationToken:
    """Thread-safe cancellation flag with an optional deadline"""

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._reason = ""
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self, reason: str = "cancelled by caller"):
        self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._reason = "deadline exceeded"
            self._event.set()
            return True
        return False

    @property
    def reason(self) -> str:
        return self._reason

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline"""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def raise_if_cancelled(self, operation: str = "", adapter: str = ""):
        if self.is_cancelled:
            raise OperationCancelled(self._reason, code='Cancelled', operation=operation, adapter=adapter)
