"""Ramp controller: runs the worker pool once per connection count."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

from rpcramp._internal.logging import get_logger
from rpcramp.engine.worker import ConnectionWorker
from rpcramp.metrics.models import RunResult
from rpcramp.metrics.stats import RunStats

if TYPE_CHECKING:
    from collections.abc import Callable

    from rpcramp.engine.config import LoadTestConfig
    from rpcramp.engine.endpoints import EndpointSet
    from rpcramp.engine.shutdown import ShutdownSignal
    from rpcramp.rpc.client import Transport
    from rpcramp.rpc.sources import RequestSource

logger = get_logger("engine.ramp")

# Extra time given to in-flight requests after a step is cut short
_DRAIN_GRACE_SECONDS = 1.0


def ramp_sequence(max_connections: int, step: int) -> list[int]:
    """Return the connection counts to run, in order.

    With ``step == 0`` there is a single step at *max_connections*.
    Otherwise counts start at 1 and grow by *step* while they stay
    ``<= max_connections``; the last count may fall short of the maximum.

    Example::

        ramp_sequence(10, 3)  # [1, 4, 7, 10]
        ramp_sequence(10, 4)  # [1, 5, 9]
    """
    if step == 0:
        return [max_connections]
    return list(range(1, max_connections + 1, step))


class RampController:
    """Runs the ramp steps strictly one after another.

    Each step gets a fresh :class:`RunStats` and exactly ``connections``
    workers sharing it. A step ends when every worker has finished or when
    shutdown is requested, whichever comes first. No further step starts
    once shutdown has been observed.

    Args:
        config: Load test parameters.
        source: Request source shared by every worker of every step.
        transport: Shared transport.
        endpoints: Target endpoints.
        shutdown: Process-wide shutdown flag.
        on_step: Called with each step summary as soon as it is available.
            Exceptions raised by it are logged and otherwise ignored.
    """

    def __init__(
        self,
        config: LoadTestConfig,
        source: RequestSource,
        transport: Transport,
        endpoints: EndpointSet,
        shutdown: ShutdownSignal,
        *,
        on_step: Callable[[RunResult], None] | None = None,
    ) -> None:
        self._config = config
        self._source = source
        self._transport = transport
        self._endpoints = endpoints
        self._shutdown = shutdown
        self._on_step = on_step

    async def run(self) -> list[RunResult]:
        """Execute every ramp step and return the summaries in ramp order."""
        results: list[RunResult] = []
        sequence = ramp_sequence(self._config.max_connections, self._config.connections_step)
        logger.info("Ramp sequence: %s", sequence)

        for connections in sequence:
            if self._shutdown.is_set():
                break
            result = await self.run_step(connections)
            results.append(result)
            self._report(result)

            if self._shutdown.is_set():
                logger.info(
                    "Shutdown observed after %d connection(s) step, skipping remaining steps",
                    connections,
                )
                break

        return results

    async def run_step(self, connections: int) -> RunResult:
        """Run one step with *connections* workers and summarise it."""
        run_config = self._config.step(connections)
        stats = RunStats()
        logger.info(
            "Starting step: connections=%d", connections, extra={"connections": connections}
        )

        start_time = time.monotonic()
        tasks = [
            asyncio.create_task(
                ConnectionWorker(
                    worker_id=i,
                    run_config=run_config,
                    stats=stats,
                    source=self._source,
                    transport=self._transport,
                    endpoints=self._endpoints,
                    shutdown=self._shutdown,
                ).run(),
                name=f"connection-{connections}-{i}",
            )
            for i in range(connections)
        ]
        workers_done = asyncio.gather(*tasks)
        shutdown_wait = asyncio.create_task(self._shutdown.wait(), name="shutdown-wait")

        try:
            await asyncio.wait({workers_done, shutdown_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            shutdown_wait.cancel()

        elapsed = time.monotonic() - start_time
        snapshot = stats.snapshot()

        if workers_done.done():
            # Surface unexpected worker crashes
            workers_done.result()
        else:
            await self._drain(tasks, workers_done, run_config.request_timeout)

        logger.info(
            "Step finished: connections=%d, completed=%d, elapsed=%.2fs",
            connections,
            snapshot.completed,
            elapsed,
            extra={"connections": connections},
        )
        return RunResult.from_snapshot(connections, snapshot, elapsed)

    async def _drain(
        self,
        tasks: list[asyncio.Task[int]],
        workers_done: asyncio.Future[list[int]],
        request_timeout: float,
    ) -> None:
        """Let in-flight requests finish, then cancel what is left."""
        _done, pending = await asyncio.wait(tasks, timeout=request_timeout + _DRAIN_GRACE_SECONDS)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(
                "Cancelled %d worker(s) still running after shutdown",
                len(pending),
                extra={"connections": len(tasks)},
            )
        with contextlib.suppress(asyncio.CancelledError):
            await workers_done

    def _report(self, result: RunResult) -> None:
        if self._on_step is None:
            return
        try:
            self._on_step(result)
        except Exception:
            logger.exception("Step reporting failed for %d connection(s)", result.connections)
