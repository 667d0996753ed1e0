"""Latency percentiles for the per-step console summary.

``hdrh`` only stores integers, so latencies are kept in microseconds and
converted back to milliseconds on the way out.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

# 1 µs .. 10 min; the per-request timeout is expressed in ms and never
# realistically exceeds that
_MIN_US = 1
_MAX_US = 600_000_000
_PRECISION = 3


class LatencyHistogram:
    """Records response times in milliseconds, answers in milliseconds.

    Values outside the trackable range are clamped rather than dropped, so
    ``count`` always equals the number of :meth:`record_ms` calls.
    """

    def __init__(self) -> None:
        self._hdr: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            _MIN_US, _MAX_US, _PRECISION
        )

    @staticmethod
    def _to_us(latency_ms: float) -> int:
        return min(max(round(latency_ms * 1000), _MIN_US), _MAX_US)

    def record_ms(self, latency_ms: float) -> None:
        self._hdr.record_value(self._to_us(latency_ms))

    @property
    def count(self) -> int:
        return int(self._hdr.total_count)

    def percentile(self, percentile: float) -> float:
        """Latency at *percentile* (0-100), 0.0 while nothing is recorded."""
        if not self.count:
            return 0.0
        return self._hdr.get_value_at_percentile(percentile) / 1000.0

    def max(self) -> float:
        """Slowest recorded latency, 0.0 while nothing is recorded."""
        if not self.count:
            return 0.0
        return self._hdr.get_max_value() / 1000.0
