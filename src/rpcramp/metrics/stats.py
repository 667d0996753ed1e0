"""Per-step statistics shared by every connection worker of a ramp step."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rpcramp.engine.classify import OutcomeKind
from rpcramp.metrics.histogram import LatencyHistogram

if TYPE_CHECKING:
    from rpcramp.engine.classify import RequestOutcome


@dataclass(frozen=True)
class StatsSnapshot:
    """A consistent, read-only copy of :class:`RunStats`.

    Attributes:
        completed: Attempts finished, whatever the outcome.
        successful: Attempts classified as successes.
        failed: Attempts classified as failures (timeouts included).
        timeouts: Failures caused by the per-request deadline.
        total_response_time_ms: Sum of latencies of successful attempts.
        errors: Error description to occurrence count.
        latency_p50: Median successful latency in milliseconds.
        latency_p95: 95th percentile successful latency in milliseconds.
        latency_p99: 99th percentile successful latency in milliseconds.
        latency_max: Slowest successful latency in milliseconds.
    """

    completed: int
    successful: int
    failed: int
    timeouts: int
    total_response_time_ms: float
    errors: dict[str, int] = field(default_factory=dict)
    latency_p50: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    latency_max: float = 0.0

    @property
    def average_response_time_ms(self) -> float:
        """Cumulative successful latency over all completed attempts."""
        if self.completed == 0:
            return 0.0
        return self.total_response_time_ms / self.completed


class RunStats:
    """Mutable aggregate for one ramp step.

    ``completed`` is bumped on the hot path without taking the lock: all
    workers run on one event loop and the increment never awaits. Every
    other field changes inside one locked section per outcome, so a reader
    can never observe e.g. a timeout counted without its failure.

    Created fresh at the start of a step and summarised at its end.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._completed = 0
        self._successful = 0
        self._failed = 0
        self._timeouts = 0
        self._total_response_time_ms = 0.0
        self._errors: Counter[str] = Counter()
        self._latency = LatencyHistogram()

    @property
    def completed(self) -> int:
        """Attempts finished so far. May run ahead of the other counters."""
        return self._completed

    def increment_completed(self) -> None:
        self._completed += 1

    def record_success(self, latency_ms: float) -> None:
        with self._lock:
            self._successful += 1
            self._total_response_time_ms += latency_ms
            self._latency.record_ms(latency_ms)

    def record_failure(self, error: str | None = None, *, timed_out: bool = False) -> None:
        """Count a failed attempt.

        Args:
            error: Description added to the error tally, if any.
            timed_out: Whether the deadline expired. A timeout is counted
                both as a timeout and as a failure.
        """
        with self._lock:
            self._failed += 1
            if timed_out:
                self._timeouts += 1
            if error is not None:
                self._errors[error] += 1

    def record(self, outcome: RequestOutcome) -> None:
        """Apply a classified outcome and count the attempt as completed."""
        if outcome.kind is OutcomeKind.SUCCESS:
            self.record_success(outcome.latency_ms)
        else:
            self.record_failure(outcome.error, timed_out=outcome.kind is OutcomeKind.TIMEOUT)
        self.increment_completed()

    def snapshot(self) -> StatsSnapshot:
        """Return a consistent copy of every field."""
        with self._lock:
            return StatsSnapshot(
                completed=self._completed,
                successful=self._successful,
                failed=self._failed,
                timeouts=self._timeouts,
                total_response_time_ms=self._total_response_time_ms,
                errors=dict(self._errors),
                latency_p50=self._latency.percentile(50.0),
                latency_p95=self._latency.percentile(95.0),
                latency_p99=self._latency.percentile(99.0),
                latency_max=self._latency.max(),
            )
