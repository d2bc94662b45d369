"""
Test Configuration - Shared fixtures for scanner tests.

Uses pytest fixtures to create isolated directory trees and scan contexts.
"""

import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Generator, List

import pytest

from diskscan.cancellation import CancellationToken
from diskscan.config import ScanConfig, set_config
from diskscan.counters import Counters
from diskscan.errors import ErrorCollector
from diskscan.events import EventSink
from diskscan.models import DoneEvent, ProgressEvent, ScanEvent
from diskscan.progress import ProgressReporter
from diskscan.scanner import ScanContext, ScanEngine


class RecordingSink(EventSink):
    """Thread-safe sink that keeps every event in arrival order."""

    def __init__(self):
        self.events: List[ScanEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: ScanEvent) -> None:
        with self._lock:
            self.events.append(event)

    @property
    def progress(self) -> List[ProgressEvent]:
        return [e for e in self.events if isinstance(e, ProgressEvent)]

    @property
    def done(self) -> List[DoneEvent]:
        return [e for e in self.events if isinstance(e, DoneEvent)]


class TripAfter(CancellationToken):
    """Token that reports not-cancelled for the first ``checks`` checks only."""

    def __init__(self, checks: int):
        super().__init__()
        self._remaining = checks
        self._lock = threading.Lock()

    def is_cancelled(self) -> bool:
        with self._lock:
            if self._remaining > 0:
                self._remaining -= 1
                return False
        return True


def write_file(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="diskscan_test_")
    # Resolve to handle macOS /var -> /private/var symlink
    resolved = Path(tmp).resolve()
    yield resolved
    shutil.rmtree(str(resolved), ignore_errors=True)


@pytest.fixture
def test_config() -> Generator[ScanConfig, None, None]:
    """Create an isolated test configuration."""
    config = ScanConfig(
        max_depth=5,
        top_children=10,
        progress_interval_ms=120,
        max_workers=4,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def executor() -> Generator[ThreadPoolExecutor, None, None]:
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="test-scanner")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_context(recording_sink):
    """Factory for a fresh scan context wired to ``recording_sink``."""
    def factory(
        max_depth: int = 5,
        top_children: int = 10,
        token: CancellationToken | None = None,
        interval_ms: int = 120,
        scan_id: str = "test-scan",
    ) -> ScanContext:
        return ScanContext(
            scan_id=scan_id,
            max_depth=max_depth,
            top_children=top_children,
            token=token or CancellationToken(),
            counters=Counters(),
            errors=ErrorCollector(),
            progress=ProgressReporter(scan_id, recording_sink, interval_ms),
        )
    return factory


@pytest.fixture
def run_scan(executor, make_context):
    """Run the engine from depth 0 and return ``(root_node, context)``."""
    async def _run(path: Path, **kwargs):
        ctx = make_context(**kwargs)
        node = await ScanEngine(executor).scan(Path(path), 0, ctx)
        return node, ctx
    return _run


@pytest.fixture
def three_files(temp_dir: Path) -> Path:
    """A directory holding three files of 10, 20 and 30 bytes."""
    root = temp_dir / "flat"
    write_file(root / "a.bin", 10)
    write_file(root / "b.bin", 20)
    write_file(root / "c.bin", 30)
    return root


@pytest.fixture
def nested_tree(temp_dir: Path) -> Path:
    """
    Nested tree totalling 565 bytes in 12 entries (root included):

        tree/
          top.bin            100
          docs/
            readme.txt         5
            notes.txt          7
            deep/
              inner.bin       50
              deeper/
                x.bin          3
          media/
            clip.bin         400
          empty/
    """
    root = temp_dir / "tree"
    write_file(root / "top.bin", 100)
    write_file(root / "docs" / "readme.txt", 5)
    write_file(root / "docs" / "notes.txt", 7)
    write_file(root / "docs" / "deep" / "inner.bin", 50)
    write_file(root / "docs" / "deep" / "deeper" / "x.bin", 3)
    write_file(root / "media" / "clip.bin", 400)
    (root / "empty").mkdir()
    return root
