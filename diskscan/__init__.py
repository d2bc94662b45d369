"""
diskscan - Concurrent disk-usage scanning engine.

Modules:
    - config: Centralized configuration
    - models: Scan tree nodes and event payloads
    - counters: Shared entry/byte counters
    - cancellation: Cooperative cancellation token
    - errors: Error taxonomy, logging policies, per-scan error collection
    - progress: Throttled progress sampling
    - events: Event sinks (callback, asyncio queue, JSON lines)
    - scanner: Recursive parallel walker (tree and flat traversals)
    - registry: Active scan registry
    - orchestrator: ScanService entry point and CLI
    - report: Text rendering of scan trees

Usage:
    from diskscan import ScanService, AsyncQueueSink

    sink = AsyncQueueSink()
    service = ScanService(sink)
    scan_id = await service.start_scan("/data", max_depth=4, top_children=50)
    (done,) = await sink.wait_done()
"""

from .errors import RootNotFoundError, ScanCancelled, ScanError, UnknownScanIdError
from .events import AsyncQueueSink, CallbackSink, EventSink, JsonLinesSink
from .models import DoneEvent, NodeKind, ProgressEvent, ScanNode
from .orchestrator import ScanService, scan_path

__all__ = [
    "ScanService",
    "scan_path",
    "EventSink",
    "CallbackSink",
    "AsyncQueueSink",
    "JsonLinesSink",
    "ScanNode",
    "NodeKind",
    "ProgressEvent",
    "DoneEvent",
    "ScanError",
    "RootNotFoundError",
    "UnknownScanIdError",
    "ScanCancelled",
]
