"""
Progress - Throttled progress sampling for parallel scan branches.

All branches of a scan share one "last emission" timestamp, measured in
milliseconds since the scan started. A caller emits only if the throttle
window has elapsed AND it wins the compare-and-set that advances the
timestamp, so at most one sample goes out per window no matter how many
threads report at once. Everything else is silently dropped: progress is
a sampled view, never a log.
"""

import time
from pathlib import Path
from typing import Callable, Optional, Union

from .counters import AtomicCounter, Counters
from .events import EventSink
from .models import ProgressEvent


class ProgressReporter:
    """Emits ``scan_progress`` samples for one scan, at most one per window."""

    def __init__(
        self,
        scan_id: str,
        sink: EventSink,
        interval_ms: int = 120,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.scan_id = scan_id
        self.interval_ms = interval_ms
        self._sink = sink
        self._clock = clock
        self._start = clock()
        self._last_emit_ms = AtomicCounter(0)

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._start) * 1000)

    def maybe_emit(
        self,
        entries: int,
        scanned_bytes: int,
        current_path: Optional[Union[str, Path]] = None,
    ) -> bool:
        """
        Emit a progress sample unless one went out within the window.

        Returns:
            True if this call emitted
        """
        now_ms = self.elapsed_ms()
        while True:
            prev = self._last_emit_ms.load()
            if max(now_ms - prev, 0) < self.interval_ms:
                return False
            if self._last_emit_ms.compare_and_set(prev, now_ms):
                break

        self._sink.emit(ProgressEvent(
            scan_id=self.scan_id,
            scanned_entries=entries,
            scanned_bytes=scanned_bytes,
            current_path=str(current_path) if current_path is not None else None,
        ))
        return True

    def sample(self, counters: Counters, current_path: Optional[Path] = None) -> bool:
        """Shorthand for ``maybe_emit`` with a scan's current counter values."""
        snapshot = counters.snapshot()
        return self.maybe_emit(snapshot.entries, snapshot.bytes, current_path)
