"""Top-level load test orchestrator."""

from __future__ import annotations

import asyncio
import sys
import time
from typing import TYPE_CHECKING

from rpcramp._internal.errors import EngineError
from rpcramp._internal.logging import get_logger, setup_logging
from rpcramp.engine.endpoints import EndpointSet
from rpcramp.engine.ramp import RampController
from rpcramp.engine.shutdown import ShutdownCoordinator, ShutdownSignal
from rpcramp.metrics.models import LoadTestResult
from rpcramp.rpc.client import JsonRpcClient
from rpcramp.rpc.sources import LineProducer, StaticRequestSource, StreamingRequestSource

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from rpcramp.engine.config import LoadTestConfig
    from rpcramp.metrics.models import RunResult
    from rpcramp.rpc.client import Transport
    from rpcramp.rpc.request import JsonRpcRequest
    from rpcramp.rpc.sources import RequestSource

logger = get_logger("engine.runner")

_TEMPLATE_REQUIRED = "A request template is required unless requests are streamed"


def _install_uvloop() -> None:
    """Install uvloop as the default event loop policy if available.

    Falls back silently to the default asyncio event loop on Windows
    or if uvloop is not installed.
    """
    if sys.platform == "win32":
        return

    try:
        import uvloop

        uvloop.install()
        logger.debug("uvloop installed as event loop policy")
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")


class LoadTestRunner:
    """Wires together one load test run.

    Creates the shutdown flag and its signal listener, the request source
    (plus the line producer in streaming mode), the shared transport and
    the ramp controller, and tears them down again when the run ends.

    Args:
        config: Load test parameters.
        template: Static request template. Required unless streaming.
        lines: Line-delimited JSON input for streaming mode. Defaults to
            standard input.
        transport: Transport to use instead of a fresh ``JsonRpcClient``.
        on_step: Called with each step summary.
        shutdown: Shutdown flag to observe. A new one is created if omitted.
        handle_signals: Install SIGINT/SIGTERM handlers for the run.
        log_level: Logging level.

    Raises:
        EngineError: If no template is given outside streaming mode.
    """

    def __init__(
        self,
        config: LoadTestConfig,
        *,
        template: JsonRpcRequest | None = None,
        lines: Iterable[str] | None = None,
        transport: Transport | None = None,
        on_step: Callable[[RunResult], None] | None = None,
        shutdown: ShutdownSignal | None = None,
        handle_signals: bool = True,
        log_level: int | None = None,
    ) -> None:
        if not config.stream and template is None:
            raise EngineError(_TEMPLATE_REQUIRED)
        self.config = config
        self._template = template
        self._lines = lines
        self._transport = transport
        self._on_step = on_step
        self.shutdown = shutdown or ShutdownSignal()
        self._handle_signals = handle_signals
        self._log_level = log_level

    def run(self) -> LoadTestResult:
        """Execute the load test and return results.

        This is a blocking call that runs until every ramp step has
        finished or a stop signal (SIGINT/SIGTERM) is received.
        """
        if self._log_level is not None:
            setup_logging(level=self._log_level)
        _install_uvloop()
        return asyncio.run(self.run_async())

    async def run_async(self) -> LoadTestResult:
        """Async entry point, for callers that already run an event loop."""
        config = self.config
        endpoints = EndpointSet(config.endpoints, strategy=config.endpoint_strategy)
        coordinator = ShutdownCoordinator(self.shutdown)
        producer: LineProducer | None = None
        source: RequestSource

        if config.stream:
            stream_source = StreamingRequestSource(self.shutdown, maxsize=config.queue_size)
            producer = LineProducer(
                self._lines if self._lines is not None else sys.stdin,
                stream_source,
                self.shutdown,
            )
            source = stream_source
        elif self._template is not None:
            source = StaticRequestSource(self._template)
        else:
            raise EngineError(_TEMPLATE_REQUIRED)

        logger.info(
            "Starting load test: endpoints=%s, source=%s, max_connections=%d, step=%d, "
            "requests=%d, duration=%.1fs, timeout=%dms",
            endpoints.describe(),
            source.describe(),
            config.max_connections,
            config.connections_step,
            config.requests_per_connection,
            config.duration_seconds,
            config.timeout_ms,
        )
        if not config.stream and not config.step(1).bounded:
            logger.warning(
                "Neither a request limit nor a duration is set; "
                "each step runs until interrupted"
            )

        start_time = time.monotonic()
        if self._handle_signals:
            coordinator.install()
        try:
            if producer is not None:
                producer.start()
            if self._transport is not None:
                steps = await self._run_ramp(source, self._transport, endpoints)
            else:
                async with JsonRpcClient(pool_size=config.max_connections) as client:
                    steps = await self._run_ramp(source, client, endpoints)
        except Exception as exc:
            logger.exception("Load test failed")
            raise EngineError("Load test failed") from exc
        finally:
            if producer is not None:
                producer.stop()
            coordinator.remove()

        logger.info(
            "Load test completed: steps=%d, duration=%.1fs, interrupted=%s",
            len(steps),
            time.monotonic() - start_time,
            self.shutdown.is_set(),
        )
        return LoadTestResult(
            steps=steps,
            parse_failures=producer.parse_failures if producer is not None else 0,
            interrupted=self.shutdown.is_set(),
        )

    async def _run_ramp(
        self,
        source: RequestSource,
        transport: Transport,
        endpoints: EndpointSet,
    ) -> list[RunResult]:
        controller = RampController(
            self.config,
            source,
            transport,
            endpoints,
            self.shutdown,
            on_step=self._on_step,
        )
        return await controller.run()
