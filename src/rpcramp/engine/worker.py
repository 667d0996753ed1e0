"""Connection worker: one request loop bound to a ramp step."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import aiohttp

from rpcramp._internal.logging import get_logger
from rpcramp.engine.classify import classify_response, timeout_outcome, transport_error_outcome

if TYPE_CHECKING:
    from rpcramp.engine.classify import RequestOutcome
    from rpcramp.engine.config import RunConfig
    from rpcramp.engine.endpoints import EndpointSet
    from rpcramp.engine.shutdown import ShutdownSignal
    from rpcramp.metrics.stats import RunStats
    from rpcramp.rpc.client import Transport
    from rpcramp.rpc.request import JsonRpcRequest
    from rpcramp.rpc.sources import RequestSource

logger = get_logger("engine.worker")


async def dispatch(
    transport: Transport,
    url: str,
    request: JsonRpcRequest,
    *,
    timeout: float,
    min_body_bytes: int,
) -> RequestOutcome:
    """Send one request under a deadline and classify what happened.

    On expiry the in-flight exchange is cancelled, which hands its
    connection back to the pool.

    Args:
        transport: Shared transport.
        url: Target endpoint.
        request: Payload to send.
        timeout: Deadline in seconds.
        min_body_bytes: Smallest 2xx body that counts as a success.

    Returns:
        The classified outcome.
    """
    start = time.monotonic()
    try:
        response = await asyncio.wait_for(transport.send(url, request), timeout=timeout)
    except TimeoutError:
        return timeout_outcome((time.monotonic() - start) * 1000)
    except (aiohttp.ClientError, OSError) as exc:
        return transport_error_outcome(exc, (time.monotonic() - start) * 1000)

    latency_ms = (time.monotonic() - start) * 1000
    return classify_response(response, latency_ms, min_body_bytes=min_body_bytes)


class ConnectionWorker:
    """Issues requests one after another until a stop condition holds.

    A worker stops when shutdown is requested, when it has issued
    ``requests_per_connection`` requests, when ``duration_seconds`` have
    passed since it started, or when the request source is exhausted. The
    shutdown flag is only checked between requests: a request already in
    flight runs to completion or to its own deadline.

    Attributes:
        worker_id: Index of the worker within its ramp step.
        issued: Requests issued so far.
    """

    def __init__(
        self,
        worker_id: int,
        run_config: RunConfig,
        stats: RunStats,
        source: RequestSource,
        transport: Transport,
        endpoints: EndpointSet,
        shutdown: ShutdownSignal,
    ) -> None:
        self.worker_id = worker_id
        self._config = run_config
        self._stats = stats
        self._source = source
        self._transport = transport
        self._endpoints = endpoints
        self._shutdown = shutdown
        self.issued = 0
        self._started_at = 0.0
        self._log_context = {"connections": run_config.connections, "worker_id": worker_id}

    def _should_stop(self) -> bool:
        if self._shutdown.is_set():
            return True
        limit = self._config.requests_per_connection
        if limit > 0 and self.issued >= limit:
            return True
        duration = self._config.duration_seconds
        return duration > 0 and time.monotonic() - self._started_at > duration

    async def run(self) -> int:
        """Run the request loop.

        Returns:
            The number of requests issued.
        """
        self._started_at = time.monotonic()

        while not self._should_stop():
            request = await self._source.next_request()
            if request is None:
                logger.debug(
                    "Worker %d: request source exhausted", self.worker_id, extra=self._log_context
                )
                break

            outcome = await dispatch(
                self._transport,
                self._endpoints.choose(),
                request,
                timeout=self._config.request_timeout,
                min_body_bytes=self._config.min_body_bytes,
            )
            self._stats.record(outcome)
            self.issued += 1

            # Let other workers run when the transport answers synchronously
            await asyncio.sleep(0)

        logger.debug(
            "Worker %d finished after %d request(s)",
            self.worker_id,
            self.issued,
            extra=self._log_context,
        )
        return self.issued
