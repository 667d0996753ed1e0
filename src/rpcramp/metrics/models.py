"""Result dataclasses for rpcramp."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rpcramp.metrics.stats import StatsSnapshot

__all__ = [
    "RESULT_HEADER",
    "LoadTestResult",
    "RunResult",
]

# Column order of every exported row.
RESULT_HEADER = (
    "connections",
    "total_requests",
    "successful_requests",
    "failed_requests",
    "average_response_time",
    "average_requests_per_second",
    "elapsed_time",
    "timeout_requests",
)


@dataclass(frozen=True)
class RunResult:
    """Summary of one ramp step.

    The first eight attributes form the exported row, in
    :data:`RESULT_HEADER` order. The rest are only shown on the console.

    Attributes:
        connections: Connection workers spawned for the step.
        total_requests: Attempts completed, whatever the outcome.
        successful_requests: Attempts classified as successes.
        failed_requests: Attempts classified as failures (timeouts included).
        average_response_time: Cumulative successful latency divided by
            ``total_requests``, in milliseconds. 0 when nothing completed.
        average_requests_per_second: ``total_requests / elapsed_time``.
        elapsed_time: Wall-clock duration of the step in seconds.
        timeout_requests: Failures caused by the per-request deadline.
        errors: Error description to occurrence count.
        latency_p50: Median successful latency (ms).
        latency_p95: 95th percentile successful latency (ms).
        latency_p99: 99th percentile successful latency (ms).
        latency_max: Slowest successful latency (ms).
    """

    connections: int
    total_requests: int
    successful_requests: int
    failed_requests: int
    average_response_time: float
    average_requests_per_second: float
    elapsed_time: float
    timeout_requests: int
    errors: dict[str, int] = field(default_factory=dict)
    latency_p50: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    latency_max: float = 0.0

    @classmethod
    def from_snapshot(
        cls,
        connections: int,
        snapshot: StatsSnapshot,
        elapsed_seconds: float,
    ) -> RunResult:
        """Derive a step summary from the final stats of that step."""
        rps = snapshot.completed / elapsed_seconds if elapsed_seconds > 0 else 0.0
        return cls(
            connections=connections,
            total_requests=snapshot.completed,
            successful_requests=snapshot.successful,
            failed_requests=snapshot.failed,
            average_response_time=snapshot.average_response_time_ms,
            average_requests_per_second=rps,
            elapsed_time=elapsed_seconds,
            timeout_requests=snapshot.timeouts,
            errors=dict(snapshot.errors),
            latency_p50=snapshot.latency_p50,
            latency_p95=snapshot.latency_p95,
            latency_p99=snapshot.latency_p99,
            latency_max=snapshot.latency_max,
        )

    def as_row(self) -> list[str]:
        """Return the exported row as strings, in header order."""
        return [
            str(self.connections),
            str(self.total_requests),
            str(self.successful_requests),
            str(self.failed_requests),
            f"{self.average_response_time:.2f}",
            f"{self.average_requests_per_second:.2f}",
            f"{self.elapsed_time:.2f}",
            str(self.timeout_requests),
        ]


@dataclass
class LoadTestResult:
    """Complete result of a load test run.

    Attributes:
        steps: One summary per executed ramp step, in ramp order.
        parse_failures: Streamed lines that could not be parsed.
        interrupted: Whether a shutdown signal cut the run short.
    """

    steps: list[RunResult] = field(default_factory=list)
    parse_failures: int = 0
    interrupted: bool = False
