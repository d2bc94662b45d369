"""
Counters - Running entry/byte totals shared by every branch of one scan.
"""

import threading
from dataclasses import dataclass


class AtomicCounter:
    """
    Integer cell safe to update from any thread.

    Python has no lock-free atomics; a per-cell lock gives the same
    guarantees for ``add``, ``load`` and ``compare_and_set``.
    """

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def add(self, delta: int) -> int:
        """Add ``delta`` and return the new value."""
        with self._lock:
            self._value += delta
            return self._value

    def load(self) -> int:
        return self._value

    def compare_and_set(self, expected: int, new: int) -> bool:
        """Store ``new`` only if the current value is still ``expected``."""
        with self._lock:
            if self._value != expected:
                return False
            self._value = new
            return True

    def __repr__(self) -> str:
        return f"AtomicCounter({self._value})"


@dataclass(frozen=True)
class CounterSnapshot:
    entries: int
    bytes: int


class Counters:
    """
    Entry and byte counters for one scan.

    Values are eventually consistent magnitudes for progress display; the
    completion event's tree is the source of truth.
    """

    def __init__(self):
        self._entries = AtomicCounter()
        self._bytes = AtomicCounter()

    def add_entry(self, size: int = 0) -> None:
        """Count one visited entry and, for files, its length."""
        self._entries.add(1)
        if size:
            self._bytes.add(size)

    @property
    def entries(self) -> int:
        return self._entries.load()

    @property
    def bytes(self) -> int:
        return self._bytes.load()

    def snapshot(self) -> CounterSnapshot:
        return CounterSnapshot(entries=self.entries, bytes=self.bytes)
