"""
Progress Tests - Verify counters and throttled progress sampling.

Tests:
- Throttle window (first sample, in-window drops, window expiry)
- Exactly one winner per window under concurrent callers
- Counter consistency under concurrent updates
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from diskscan.counters import AtomicCounter, Counters
from diskscan.progress import ProgressReporter


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestProgressReporter:
    """Tests for the ProgressReporter throttle."""

    @pytest.fixture
    def clock(self):
        return FakeClock(100.0)

    @pytest.fixture
    def reporter(self, recording_sink, clock):
        return ProgressReporter("scan-1", recording_sink, interval_ms=120, clock=clock)

    def test_nothing_before_first_window(self, reporter, recording_sink, clock):
        """No sample is emitted until one full window after the scan started."""
        assert not reporter.maybe_emit(1, 10, "/a")
        clock.now += 0.119
        assert not reporter.maybe_emit(2, 20, "/b")

        assert recording_sink.events == []

    def test_emits_after_window(self, reporter, recording_sink, clock):
        """A sample goes out once the window has elapsed."""
        clock.now += 0.121
        assert reporter.maybe_emit(3, 30, "/c")

        (event,) = recording_sink.progress
        assert event.scan_id == "scan-1"
        assert event.scanned_entries == 3
        assert event.scanned_bytes == 30
        assert event.current_path == "/c"

    def test_drops_samples_inside_window(self, reporter, recording_sink, clock):
        """Only one sample per window; later ones must wait for the next window."""
        clock.now += 0.150
        assert reporter.maybe_emit(1, 1)
        clock.now += 0.100
        assert not reporter.maybe_emit(2, 2)
        clock.now += 0.030
        assert reporter.maybe_emit(3, 3)

        assert [e.scanned_entries for e in recording_sink.progress] == [1, 3]

    def test_current_path_is_optional(self, reporter, recording_sink, clock):
        """A sample without a path leaves the field out of the payload."""
        clock.now += 1
        reporter.maybe_emit(1, 1)

        assert "current_path" not in recording_sink.progress[0].to_dict()

    def test_sample_reads_counters(self, reporter, recording_sink, clock):
        """sample() reports the scan's current counter values."""
        counters = Counters()
        counters.add_entry(64)
        counters.add_entry()
        clock.now += 1

        assert reporter.sample(counters, "/x")
        assert recording_sink.progress[0].scanned_entries == 2
        assert recording_sink.progress[0].scanned_bytes == 64

    def test_one_winner_per_window(self, recording_sink, clock):
        """Concurrent callers in the same window produce exactly one sample."""
        reporter = ProgressReporter("scan-1", recording_sink, interval_ms=120, clock=clock)
        clock.now += 1
        callers = 16
        barrier = threading.Barrier(callers)

        def report(i):
            barrier.wait()
            return reporter.maybe_emit(i, i)

        with ThreadPoolExecutor(max_workers=callers) as pool:
            results = list(pool.map(report, range(callers)))

        assert results.count(True) == 1
        assert len(recording_sink.progress) == 1


class TestCounters:
    """Tests for shared scan counters."""

    def test_add_entry(self):
        """Files add bytes, directories only add an entry."""
        counters = Counters()
        counters.add_entry(100)
        counters.add_entry()

        snapshot = counters.snapshot()
        assert snapshot.entries == 2
        assert snapshot.bytes == 100

    def test_concurrent_updates(self):
        """Updates from many threads are never lost."""
        counters = Counters()

        def work(_):
            for _ in range(1000):
                counters.add_entry(3)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(8)))

        assert counters.entries == 8000
        assert counters.bytes == 24000


class TestAtomicCounter:
    """Tests for the compare-and-set cell."""

    def test_compare_and_set(self):
        """compare_and_set only succeeds against the current value."""
        cell = AtomicCounter(5)

        assert not cell.compare_and_set(4, 10)
        assert cell.load() == 5
        assert cell.compare_and_set(5, 10)
        assert cell.load() == 10

    def test_add_returns_new_value(self):
        cell = AtomicCounter()
        assert cell.add(7) == 7
        assert cell.add(-2) == 5
