"""
Progress reporting for long-running generation calls.

The orchestrator emits human-readable status lines; callers subscribe with a
plain ``(message: str) -> None`` callable (a UI status line, a CLI printer,
a list collector in the HTTP layer).
"""

import threading
from typing import Callable, List, Optional

ProgressCallback = Callable[[str], None]


class ProgressReporter:
    """Synchronous observer channel for progress messages."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._subscribers: List[ProgressCallback] = []
        # Worker threads of the per-document fan-out emit concurrently
        self._lock = threading.RLock()
        if callback is not None:
            self.subscribe(callback)

    def subscribe(self, callback: ProgressCallback) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: ProgressCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def emit(self, message: str) -> None:
        """Deliver a message to every subscriber in subscription order."""
        with self._lock:
            subscribers = list(self._subscribers)
            for callback in subscribers:
                callback(message)

    __call__ = emit


class ProgressCollector:
    """Subscriber that keeps every message, used by the HTTP surface and tests."""

    def __init__(self):
        self.messages: List[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)
