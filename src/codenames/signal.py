"""
Single-fire, multi-listener wake-up signal.

A game holds exactly one live Signal. Appending an event fires it and installs a fresh one,
so every waiter that captured the old signal is woken at once, whatever the number of waiters.
"""

import threading
import time
from typing import Optional

# How often a cancellable wait checks whether its caller went away.
CANCEL_CHECK_INTERVAL = 0.25


class Signal:
    def __init__(self) -> None:
        self._fired = threading.Event()

    @property
    def fired(self) -> bool:
        return self._fired.is_set()

    def fire(self) -> None:
        self._fired.set()

    def wait(self, timeout: float, cancelled: Optional[threading.Event] = None) -> bool:
        """Block until fired, cancelled, or timed out. Returns True only if the signal fired."""
        if cancelled is None:
            return self._fired.wait(timeout)

        deadline = time.monotonic() + timeout
        while not cancelled.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return self._fired.is_set()
            if self._fired.wait(min(remaining, CANCEL_CHECK_INTERVAL)):
                return True
        return False
