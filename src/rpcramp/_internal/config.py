"""Environment-driven defaults for rpcramp."""

from __future__ import annotations

import os
from dataclasses import dataclass

from rpcramp._internal.errors import ConfigError

DEFAULT_TIMEOUT_MS = 15_000
DEFAULT_MIN_BODY_BYTES = 1000
DEFAULT_QUEUE_SIZE = 1024
DEFAULT_OUTPUT = "results.csv"


@dataclass(frozen=True)
class RpcRampConfig:
    """Process-wide defaults, overridable from the command line.

    Attributes:
        timeout_ms: Per-request deadline in milliseconds.
        min_body_bytes: Smallest successful response body that still counts
            as a real result. Shorter bodies are treated as JSON-RPC errors.
        queue_size: Capacity of the streaming request hand-off queue.
        output: Default path of the CSV results file.
    """

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    min_body_bytes: int = DEFAULT_MIN_BODY_BYTES
    queue_size: int = DEFAULT_QUEUE_SIZE
    output: str = DEFAULT_OUTPUT


def _read_int(name: str, default: int, *, minimum: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ConfigError(msg) from None

    if value < minimum:
        msg = f"{name} must be >= {minimum}, got: {value}"
        raise ConfigError(msg)
    return value


def load_config() -> RpcRampConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        RPCRAMP_TIMEOUT_MS: Request timeout in milliseconds (default: 15000).
        RPCRAMP_MIN_BODY_BYTES: Success body-size threshold (default: 1000).
        RPCRAMP_QUEUE_SIZE: Streaming queue capacity (default: 1024).
        RPCRAMP_OUTPUT: Results file path (default: results.csv).

    Returns:
        Populated RpcRampConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    output = os.environ.get("RPCRAMP_OUTPUT", DEFAULT_OUTPUT)
    if not output.strip():
        msg = "RPCRAMP_OUTPUT must not be empty"
        raise ConfigError(msg)

    return RpcRampConfig(
        timeout_ms=_read_int("RPCRAMP_TIMEOUT_MS", DEFAULT_TIMEOUT_MS, minimum=1),
        min_body_bytes=_read_int(
            "RPCRAMP_MIN_BODY_BYTES", DEFAULT_MIN_BODY_BYTES, minimum=0
        ),
        queue_size=_read_int("RPCRAMP_QUEUE_SIZE", DEFAULT_QUEUE_SIZE, minimum=1),
        output=output,
    )
