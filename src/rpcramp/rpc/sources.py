"""Request sources: a static template or a producer-fed stream."""

from __future__ import annotations

import asyncio
import copy
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, TypeVar

from rpcramp._internal.errors import RequestParseError
from rpcramp._internal.logging import get_logger
from rpcramp.rpc.request import JsonRpcRequest

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable

    from rpcramp.engine.shutdown import ShutdownSignal

logger = get_logger("rpc.sources")

_T = TypeVar("_T")


class RequestSource(ABC):
    """Supplies the payload each connection worker sends.

    One source is selected at process start and shared by every worker of
    every ramp step.
    """

    @abstractmethod
    async def next_request(self) -> JsonRpcRequest | None:
        """Return the next request, or None once the source is exhausted."""

    @abstractmethod
    def describe(self) -> str:
        """Return a human-readable description for logs."""


class StaticRequestSource(RequestSource):
    """Hands out a fresh copy of one template on every call. Never exhausted."""

    def __init__(self, template: JsonRpcRequest) -> None:
        self.template = template

    async def next_request(self) -> JsonRpcRequest:
        return copy.deepcopy(self.template)

    def describe(self) -> str:
        return f"Static: {self.template.method}"


class StreamingRequestSource(RequestSource):
    """Bounded single-producer, multi-consumer hand-off of requests.

    Consumers waiting on an empty queue wake up when an item arrives, when
    the producer closes the stream, or when shutdown is requested. Items
    already queued when the stream closes are still handed out; nothing is
    handed out after shutdown.

    Args:
        shutdown: Process-wide shutdown flag.
        maxsize: Queue capacity. A full queue makes the producer wait.
    """

    def __init__(self, shutdown: ShutdownSignal, maxsize: int = 1024) -> None:
        self._shutdown = shutdown
        self._queue: asyncio.Queue[JsonRpcRequest] = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        """Return True once the producer has finished feeding the stream."""
        return self._closed.is_set()

    def close(self) -> None:
        """Mark the stream as finished. Waiting consumers drain and exit."""
        self._closed.set()

    async def put(self, request: JsonRpcRequest) -> bool:
        """Enqueue a request, waiting for room if the queue is full.

        Returns:
            True if the request was queued, False if the stream was closed
            or shutdown was requested first.
        """
        if self._closed.is_set() or self._shutdown.is_set():
            return False
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            won, _ = await self._race(self._queue.put(request))
            return won
        return True

    async def next_request(self) -> JsonRpcRequest | None:
        while not self._shutdown.is_set():
            try:
                return self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            if self._closed.is_set():
                return None

            won, request = await self._race(self._queue.get())
            if won:
                return request
        return None

    async def _race(self, operation: Awaitable[_T]) -> tuple[bool, _T | None]:
        """Run *operation* until it finishes or the stream stops.

        Returns:
            ``(True, result)`` if the operation finished first, otherwise
            ``(False, None)`` after cancelling it.
        """
        op_task = asyncio.ensure_future(operation)
        watchers = [
            asyncio.ensure_future(self._closed.wait()),
            asyncio.ensure_future(self._shutdown.wait()),
        ]
        try:
            await asyncio.wait([op_task, *watchers], return_when=asyncio.FIRST_COMPLETED)
        finally:
            for watcher in watchers:
                watcher.cancel()

        if op_task.done() and not op_task.cancelled():
            return True, op_task.result()

        op_task.cancel()
        try:
            await op_task
        except asyncio.CancelledError:
            return False, None
        # The operation completed while being cancelled
        return True, op_task.result()

    def describe(self) -> str:
        return f"Streaming (queued={self._queue.qsize()}, closed={self.closed})"


class LineProducer:
    """Parses line-delimited JSON requests and feeds a streaming source.

    Reading happens on a daemon thread so that a blocking read from a pipe
    never holds up the event loop or interpreter exit. Each line is parsed
    independently; a malformed line is logged and counted, and the producer
    moves on. The source is closed when the input is exhausted.

    Attributes:
        parsed: Number of requests handed to the source.
        parse_failures: Number of lines that failed to parse.
    """

    def __init__(
        self,
        lines: Iterable[str],
        source: StreamingRequestSource,
        shutdown: ShutdownSignal,
    ) -> None:
        self._lines = lines
        self._source = source
        self._shutdown = shutdown
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()
        self.finished = threading.Event()
        self.parsed = 0
        self.parse_failures = 0

    def start(self) -> None:
        """Start the reader thread. Must be called from the running loop."""
        self._thread = threading.Thread(
            target=self._run,
            args=(asyncio.get_running_loop(),),
            name="rpcramp-line-producer",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Line producer thread started")

    def stop(self) -> None:
        """Stop feeding the source and close it."""
        self._stopped.set()
        self._source.close()

    def _active(self, loop: asyncio.AbstractEventLoop) -> bool:
        return not (self._stopped.is_set() or self._shutdown.is_set() or loop.is_closed())

    def _run(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            for lineno, line in enumerate(self._lines, start=1):
                if not self._active(loop):
                    break
                text = line.strip()
                if not text:
                    continue
                try:
                    request = JsonRpcRequest.from_json(text)
                except RequestParseError as exc:
                    self.parse_failures += 1
                    logger.error("Error parsing JSON-RPC request on line %d: %s", lineno, exc)
                    continue

                future = asyncio.run_coroutine_threadsafe(self._source.put(request), loop)
                if not future.result():
                    break
                self.parsed += 1
        finally:
            logger.info(
                "Line producer finished: parsed=%d, parse_failures=%d",
                self.parsed,
                self.parse_failures,
            )
            if not loop.is_closed():
                loop.call_soon_threadsafe(self._source.close)
            self.finished.set()
