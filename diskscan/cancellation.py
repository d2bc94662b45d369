"""
Cancellation - Cooperative stop flag shared by all branches of one scan.
"""

import threading

from .errors import ScanCancelled


class CancellationToken:
    """
    Write-once flag: it only ever goes from not-cancelled to cancelled.

    Nothing is preempted. Branches test the flag at their own recursion
    entry (and the flat walk once per entry), so work already running
    finishes its current step first.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled():
            raise ScanCancelled()

    def __repr__(self) -> str:
        state = "cancelled" if self.is_cancelled() else "active"
        return f"<CancellationToken {state}>"
