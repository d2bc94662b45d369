"""
Events - Sinks that carry scan events to whatever presents them.

Progress samples can be emitted from filesystem worker threads as well as
from the event loop, so every sink must accept ``emit`` from any thread.
"""

import asyncio
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, Optional, TextIO

from .models import DoneEvent, ScanEvent


logger = logging.getLogger(__name__)


class EventSink(ABC):
    """
    Contract for delivering ``scan_progress`` / ``scan_done`` events.
    """

    @abstractmethod
    def emit(self, event: ScanEvent) -> None:
        """
        Deliver one event. Must not block for long and must be thread-safe.
        """
        pass


class CallbackSink(EventSink):
    """Calls a function for every event, on the emitting thread."""

    def __init__(self, callback: Callable[[ScanEvent], None]):
        self._callback = callback

    def emit(self, event: ScanEvent) -> None:
        try:
            self._callback(event)
        except Exception as e:
            logger.error(f"Event callback error: {e}")


class AsyncQueueSink(EventSink):
    """
    Async-friendly sink.

    Events are handed to the owning event loop and can be consumed with
    ``async for event in sink.events()``.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[ScanEvent] = asyncio.Queue()

    def emit(self, event: ScanEvent) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def get(self) -> ScanEvent:
        return await self._queue.get()

    async def events(self) -> AsyncIterator[ScanEvent]:
        """
        Async generator that yields events as they arrive.

        Usage:
            sink = AsyncQueueSink()
            service = ScanService(sink)
            await service.start_scan("/data")

            async for event in sink.events():
                if isinstance(event, DoneEvent):
                    break
        """
        while True:
            yield await self._queue.get()

    def drain(self) -> list[ScanEvent]:
        """Take every event already queued, without waiting."""
        events: list[ScanEvent] = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events

    async def wait_done(self, count: int = 1) -> list[DoneEvent]:
        """Consume events until ``count`` completion events have arrived."""
        done: list[DoneEvent] = []
        while len(done) < count:
            event = await self._queue.get()
            if isinstance(event, DoneEvent):
                done.append(event)
        return done


class JsonLinesSink(EventSink):
    """Writes ``{"event": name, "payload": {...}}`` objects, one per line."""

    def __init__(self, stream: TextIO):
        self._stream = stream
        self._lock = threading.Lock()

    def emit(self, event: ScanEvent) -> None:
        line = json.dumps({"event": event.event_name, "payload": event.to_dict()})
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()
