"""
Scanner - Recursive parallel directory-size walker.

Every entry is resolved with ``lstat`` (symlinks are measured, never
followed). Directories above the depth budget are expanded into sorted,
width-truncated child lists by ``TreeTraversal``; directories at or below
it are collapsed into a single total by ``FlatTraversal``.

Blocking filesystem calls run on a shared thread pool. Sibling subtrees
are awaited together with ``asyncio.gather``, so a parent never holds a
worker thread while its children are being measured.
"""

import asyncio
import logging
import os
import stat
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import reduce
from pathlib import Path
from typing import Iterator, List

from .cancellation import CancellationToken
from .counters import Counters
from .errors import ErrorCollector, ScanCancelled, handle_error
from .models import ScanNode, saturating_add
from .progress import ProgressReporter


logger = logging.getLogger(__name__)


@dataclass
class ScanContext:
    """State shared by reference across every branch of one scan."""
    scan_id: str
    max_depth: int
    top_children: int
    token: CancellationToken
    counters: Counters
    errors: ErrorCollector
    progress: ProgressReporter


def iter_dir(path: Path, errors: ErrorCollector, context: str) -> Iterator[os.DirEntry]:
    """
    Yield the entries of ``path``.

    An unreadable directory yields nothing; a failure partway through keeps
    what was read so far. Both are recorded into ``errors``.
    """
    try:
        it = os.scandir(path)
    except OSError as e:
        errors.append(handle_error(e, path, context))
        return

    with it:
        while True:
            try:
                entry = next(it)
            except StopIteration:
                return
            except OSError as e:
                errors.append(handle_error(e, path, context))
                return
            yield entry


class Traversal(ABC):
    """
    Strategy for measuring a directory whose own entry was already counted.
    """

    def __init__(self, engine: "ScanEngine"):
        self._engine = engine

    @abstractmethod
    async def scan_directory(self, path: Path, depth: int, ctx: ScanContext) -> ScanNode:
        pass


class TreeTraversal(Traversal):
    """
    Builds child nodes: scan, sort by size, truncate to the width budget.

    The directory's size is the sum of the children it keeps, so a
    truncated directory reports the size of what is displayed.
    """

    async def scan_directory(self, path: Path, depth: int, ctx: ScanContext) -> ScanNode:
        child_paths = await self._engine.run_blocking(self._list_children, path, ctx.errors)

        children: List[ScanNode] = list(await asyncio.gather(*(
            self._scan_child(child, depth + 1, ctx) for child in child_paths
        )))

        # list.sort is stable, so equal sizes keep listing order
        children.sort(key=lambda node: node.size, reverse=True)

        omitted = 0
        if ctx.top_children > 0 and len(children) > ctx.top_children:
            omitted = len(children) - ctx.top_children
            del children[ctx.top_children:]

        size = reduce(saturating_add, (child.size for child in children), 0)
        return ScanNode.directory(path, size, children=children, omitted_children=omitted)

    @staticmethod
    def _list_children(path: Path, errors: ErrorCollector) -> List[Path]:
        return [Path(entry.path) for entry in iter_dir(path, errors, "list_dir")]

    async def _scan_child(self, path: Path, depth: int, ctx: ScanContext) -> ScanNode:
        try:
            return await self._engine.scan(path, depth, ctx)
        except ScanCancelled as e:
            ctx.errors.append(str(e))
            return ScanNode.placeholder(path)
        except Exception as e:
            logger.exception(f"Scan {ctx.scan_id}: branch {path} failed: {e}")
            ctx.errors.append(f"{path}: {e}")
            return ScanNode.placeholder(path)


class FlatTraversal(Traversal):
    """
    Sums every descendant's length without building nodes or honouring
    the depth budget. Stops early, without error, once cancelled.
    """

    async def scan_directory(self, path: Path, depth: int, ctx: ScanContext) -> ScanNode:
        size = await self._engine.run_blocking(self.total_size, path, ctx)
        return ScanNode.directory(path, size)

    def total_size(self, root: Path, ctx: ScanContext) -> int:
        """Blocking walk of ``root``'s subtree (runs on a worker thread)."""
        total = 0
        pending = [root]

        while pending:
            directory = pending.pop()
            for entry in iter_dir(directory, ctx.errors, "walk"):
                if ctx.token.is_cancelled():
                    logger.debug(f"Walk of {root} stopped by cancellation")
                    return total

                try:
                    st = entry.stat(follow_symlinks=False)
                except OSError as e:
                    ctx.errors.append(handle_error(e, Path(entry.path), "walk_stat"))
                    continue

                if stat.S_ISDIR(st.st_mode):
                    ctx.counters.add_entry()
                    pending.append(Path(entry.path))
                else:
                    total = saturating_add(total, st.st_size)
                    ctx.counters.add_entry(st.st_size)

                ctx.progress.sample(ctx.counters, entry.path)

        return total


class ScanEngine:
    """
    Measures one path and, for directories, its subtree.

    Only ``ScanCancelled`` (and, at the root, unexpected errors) escapes
    ``scan``; every I/O failure is recorded into the context's errors and
    replaced by a best-effort node. A child branch that fails for any other
    reason becomes a placeholder without disturbing its siblings.
    """

    def __init__(self, executor: Executor):
        self._executor = executor
        self._tree = TreeTraversal(self)
        self._flat = FlatTraversal(self)

    async def run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    async def scan(self, path: Path, depth: int, ctx: ScanContext) -> ScanNode:
        ctx.token.raise_if_cancelled()

        try:
            st = await self.run_blocking(os.lstat, path)
        except OSError as e:
            ctx.errors.append(handle_error(e, path, "stat"))
            return ScanNode.placeholder(path)

        if not stat.S_ISDIR(st.st_mode):
            ctx.counters.add_entry(st.st_size)
            ctx.progress.sample(ctx.counters, path)
            return ScanNode.file(path, st.st_size)

        ctx.counters.add_entry()
        ctx.progress.sample(ctx.counters, path)

        strategy = self._flat if depth >= ctx.max_depth else self._tree
        return await strategy.scan_directory(path, depth, ctx)
