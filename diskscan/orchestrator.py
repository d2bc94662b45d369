"""
Orchestrator - Main entry point for the scanning system.

``ScanService`` accepts scan requests, registers each scan, and runs it as
a detached task. Callers get scan ids back immediately; results arrive
through the service's event sink:

    start_scan / start_multi_scan → registry entry + token
        → ScanEngine (parallel, shared worker pool)
        → scan_progress samples … → exactly one scan_done
        → registry entry removed
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from tqdm import tqdm

from .config import ScanConfig, get_config
from .counters import Counters
from .errors import ErrorCollector, RootNotFoundError, ScanCancelled, UnknownScanIdError
from .events import AsyncQueueSink, EventSink, JsonLinesSink
from .models import DoneEvent, ProgressEvent, ScanNode
from .progress import ProgressReporter
from .registry import ScanHandle, ScanRegistry
from .report import SORT_KEYS, render_tree
from .scanner import ScanContext, ScanEngine


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ScanService:
    """
    Dispatches scan requests and owns everything scans share.

    One registry and one worker pool per service: concurrent scans (and
    concurrent multi-scan requests) compete for the same threads.
    """

    def __init__(self, sink: EventSink, config: Optional[ScanConfig] = None):
        self.config = config or get_config()
        self.sink = sink
        self.registry = ScanRegistry()
        self._executor: ThreadPoolExecutor | None = None
        self._tasks: Set[asyncio.Task] = set()

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="scanner"
            )
        return self._executor

    async def start_scan(
        self,
        path: PathLike,
        max_depth: Optional[int] = None,
        top_children: Optional[int] = None,
    ) -> str:
        """
        Start scanning one root in the background.

        Returns:
            The new scan id

        Raises:
            RootNotFoundError: if ``path`` does not exist
        """
        root = _absolute(path)
        if not root.exists():
            raise RootNotFoundError(path)
        return self._launch(root, max_depth, top_children)

    async def start_multi_scan(
        self,
        paths: Iterable[PathLike],
        max_depth: Optional[int] = None,
        top_children: Optional[int] = None,
    ) -> List[str]:
        """
        Start one independent scan per existing root.

        Missing roots are skipped without an error record or event; only
        the accepted scans' ids are returned, in input order.
        """
        scan_ids = []
        for path in paths:
            root = _absolute(path)
            if not root.exists():
                logger.warning(f"Skipping missing scan root: {path}")
                continue
            scan_ids.append(self._launch(root, max_depth, top_children))
        return scan_ids

    def cancel_scan(self, scan_id: str) -> None:
        """
        Ask an in-flight scan to stop. Its ``scan_done`` still follows.

        Raises:
            UnknownScanIdError: if no active scan has this id
        """
        self.registry.cancel(scan_id)

    def active_scans(self) -> List[str]:
        return self.registry.active_ids()

    async def wait_idle(self) -> None:
        """Wait until every scan started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self):
        """Shutdown the worker pool."""
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _launch(self, root: Path, max_depth: Optional[int], top_children: Optional[int]) -> str:
        max_depth = self.config.max_depth if max_depth is None else max_depth
        top_children = self.config.top_children if top_children is None else top_children
        if max_depth < 0 or top_children < 0:
            raise ValueError("max_depth and top_children must be >= 0")

        handle = self.registry.create()
        task = asyncio.get_running_loop().create_task(
            self._run_scan(handle, root, max_depth, top_children),
            name=f"scan-{handle.scan_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            f"Scan {handle.scan_id} started: {root} "
            f"(max_depth={max_depth}, top_children={top_children})"
        )
        return handle.scan_id

    async def _run_scan(
        self,
        handle: ScanHandle,
        root: Path,
        max_depth: int,
        top_children: int,
    ) -> None:
        counters = Counters()
        errors = ErrorCollector()
        ctx = ScanContext(
            scan_id=handle.scan_id,
            max_depth=max_depth,
            top_children=top_children,
            token=handle.token,
            counters=counters,
            errors=errors,
            progress=ProgressReporter(
                handle.scan_id, self.sink, self.config.progress_interval_ms
            ),
        )
        engine = ScanEngine(self._get_executor())
        start_time = time.monotonic()

        try:
            try:
                root_node = await engine.scan(root, 0, ctx)
            except ScanCancelled as e:
                errors.append(str(e))
                root_node = ScanNode.placeholder(root, size=counters.bytes)
            except Exception as e:
                logger.exception(f"Scan {handle.scan_id} failed: {e}")
                errors.append(f"{root}: {e}")
                root_node = ScanNode.placeholder(root, size=counters.bytes)

            self.sink.emit(DoneEvent(
                scan_id=handle.scan_id,
                root=root_node,
                errors=errors.snapshot(),
            ))
        finally:
            self.registry.remove(handle.scan_id)

        duration = time.monotonic() - start_time
        logger.info(
            f"Scan {handle.scan_id} complete: {counters.entries} entries, "
            f"{counters.bytes} bytes, {len(errors)} errors in {duration:.1f}s"
        )


def _absolute(path: PathLike) -> Path:
    return Path(os.path.abspath(os.path.expanduser(str(path))))


async def scan_path(
    path: PathLike,
    max_depth: Optional[int] = None,
    top_children: Optional[int] = None,
    config: Optional[ScanConfig] = None,
) -> DoneEvent:
    """
    Convenience function to scan one root and wait for the result.

    Usage:
        done = await scan_path("~/Downloads", max_depth=2)
        print(done.root.size, len(done.errors))
    """
    sink = AsyncQueueSink()
    service = ScanService(sink, config)
    try:
        await service.start_scan(path, max_depth, top_children)
        (done,) = await sink.wait_done(1)
        return done
    finally:
        service.close()


def _cancel_all(service: ScanService):
    for scan_id in service.active_scans():
        try:
            service.cancel_scan(scan_id)
        except UnknownScanIdError:
            # Finished between listing and cancelling
            pass


async def _run_cli(args: argparse.Namespace) -> int:
    sink = AsyncQueueSink()
    service = ScanService(sink)
    json_sink = JsonLinesSink(sys.stdout) if args.json else None

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, _cancel_all, service)
    except NotImplementedError:
        # Windows event loops: Ctrl+C raises KeyboardInterrupt instead
        pass

    try:
        scan_ids = await service.start_multi_scan(args.paths, args.max_depth, args.top_children)
        if not scan_ids:
            print("No existing paths to scan.", file=sys.stderr)
            return 1

        bars: Dict[str, tqdm] = {}
        if args.progress:
            for position, scan_id in enumerate(scan_ids):
                bars[scan_id] = tqdm(
                    desc=f"scan {scan_id[:8]}",
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    position=position,
                    file=sys.stderr,
                )

        results: Dict[str, DoneEvent] = {}
        while len(results) < len(scan_ids):
            event = await sink.get()
            if json_sink:
                json_sink.emit(event)

            bar = bars.get(event.scan_id)
            if isinstance(event, ProgressEvent):
                if bar is not None:
                    bar.update(event.scanned_bytes - bar.n)
                    bar.set_postfix(entries=event.scanned_entries)
            elif isinstance(event, DoneEvent):
                results[event.scan_id] = event
                if bar is not None:
                    bar.close()

        if not json_sink:
            for scan_id in scan_ids:
                done = results[scan_id]
                print("\n".join(render_tree(done.root, sort_by=args.sort)))
                if done.errors:
                    print(f"{len(done.errors)} entries could not be read:", file=sys.stderr)
                    for record in done.errors[:20]:
                        print(f"  {record}", file=sys.stderr)
                print()
        return 0
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass
        service.close()


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Concurrent disk usage scanner")
    parser.add_argument("paths", nargs="+", help="Directories or files to measure")
    parser.add_argument("--max-depth", type=int, default=None,
                        help="Depth at which subtrees collapse into a single total")
    parser.add_argument("--top-children", type=int, default=None,
                        help="Largest children kept per directory (0 = all)")
    parser.add_argument("--sort", choices=sorted(SORT_KEYS), default=None,
                        help="Re-order children in the text report (default: largest first)")
    parser.add_argument("--json", action="store_true", help="Print every event as a JSON line")
    parser.add_argument("--progress", action="store_true", help="Show live byte counters")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s"
    )

    return asyncio.run(_run_cli(args))


if __name__ == "__main__":
    sys.exit(main())
