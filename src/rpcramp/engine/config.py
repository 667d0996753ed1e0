"""Run parameters for a load test and for each of its ramp steps."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from rpcramp._internal.config import DEFAULT_MIN_BODY_BYTES, DEFAULT_QUEUE_SIZE, DEFAULT_TIMEOUT_MS
from rpcramp._internal.errors import ConfigError

EndpointStrategy = Literal["random", "round-robin"]


@dataclass(frozen=True)
class RunConfig:
    """Parameters fixed for one ramp step.

    Attributes:
        connections: Connection workers to spawn.
        requests_per_connection: Requests each worker issues (0 = no limit).
        duration_seconds: Time each worker keeps going (0 = no limit).
        request_timeout: Per-request deadline in seconds.
        min_body_bytes: Smallest 2xx body that counts as a success.
    """

    connections: int
    requests_per_connection: int = 0
    duration_seconds: float = 0.0
    request_timeout: float = DEFAULT_TIMEOUT_MS / 1000
    min_body_bytes: int = DEFAULT_MIN_BODY_BYTES

    @property
    def bounded(self) -> bool:
        """Return True if workers stop on their own (count or time limit)."""
        return self.requests_per_connection > 0 or self.duration_seconds > 0


@dataclass(frozen=True)
class LoadTestConfig:
    """Everything a load test needs, as assembled by the CLI.

    Attributes:
        endpoints: Target URLs.
        max_connections: Connection count of the last ramp step.
        connections_step: Increment between ramp steps (0 = one step).
        requests_per_connection: Requests per worker per step (0 = no limit).
        duration_seconds: Duration of each step in seconds (0 = no limit).
        timeout_ms: Per-request deadline in milliseconds.
        min_body_bytes: Smallest 2xx body that counts as a success.
        stream: Read requests from stdin instead of a template file.
        request_file: Template file, required unless ``stream`` is set.
        output: CSV results path.
        endpoint_strategy: How each request picks its endpoint.
        queue_size: Capacity of the streaming hand-off queue.

    Raises:
        ConfigError: If any value is out of range.
    """

    endpoints: tuple[str, ...]
    max_connections: int
    connections_step: int = 0
    requests_per_connection: int = 0
    duration_seconds: float = 0.0
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    min_body_bytes: int = DEFAULT_MIN_BODY_BYTES
    stream: bool = False
    request_file: Path | None = None
    output: Path = Path("results.csv")
    endpoint_strategy: EndpointStrategy = "random"
    queue_size: int = DEFAULT_QUEUE_SIZE

    def __post_init__(self) -> None:
        if not self.endpoints:
            msg = "At least one endpoint URL is required"
            raise ConfigError(msg)
        for url in self.endpoints:
            if not url.startswith(("http://", "https://")):
                msg = f"Endpoint URL must start with http:// or https://, got: {url!r}"
                raise ConfigError(msg)
        if self.max_connections < 1:
            msg = f"connections must be >= 1, got: {self.max_connections}"
            raise ConfigError(msg)
        for name in ("connections_step", "requests_per_connection", "min_body_bytes"):
            value = getattr(self, name)
            if value < 0:
                msg = f"{name} must be non-negative, got: {value}"
                raise ConfigError(msg)
        if self.duration_seconds < 0:
            msg = f"duration_seconds must be non-negative, got: {self.duration_seconds}"
            raise ConfigError(msg)
        if self.timeout_ms < 1:
            msg = f"timeout_ms must be >= 1, got: {self.timeout_ms}"
            raise ConfigError(msg)
        if self.queue_size < 1:
            msg = f"queue_size must be >= 1, got: {self.queue_size}"
            raise ConfigError(msg)
        if self.endpoint_strategy not in ("random", "round-robin"):
            msg = f"Unknown endpoint strategy: {self.endpoint_strategy!r}"
            raise ConfigError(msg)
        if not self.stream and self.request_file is None:
            msg = "A request file is required unless requests are streamed"
            raise ConfigError(msg)

    @property
    def request_timeout(self) -> float:
        """Per-request deadline in seconds."""
        return self.timeout_ms / 1000

    def step(self, connections: int) -> RunConfig:
        """Return the parameters of the ramp step running *connections* workers."""
        return RunConfig(
            connections=connections,
            requests_per_connection=self.requests_per_connection,
            duration_seconds=self.duration_seconds,
            request_timeout=self.request_timeout,
            min_body_bytes=self.min_body_bytes,
        )
