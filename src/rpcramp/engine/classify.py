"""Classification of a single request attempt."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rpcramp.rpc.client import RpcResponse

TIMEOUT_ERROR = "Request timed out"

# Longest body excerpt kept in an error description
_EXCERPT_CHARS = 120


class OutcomeKind(Enum):
    """How a request attempt ended."""

    SUCCESS = auto()
    TIMEOUT = auto()
    TRANSPORT_ERROR = auto()
    HTTP_ERROR = auto()
    PAYLOAD_ERROR = auto()


@dataclass(frozen=True)
class RequestOutcome:
    """The classified result of one attempt.

    Attributes:
        kind: Outcome category.
        latency_ms: Wall-clock time spent on the attempt.
        error: Description for the error tally. None for successes and
            timeouts.
    """

    kind: OutcomeKind
    latency_ms: float
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


def timeout_outcome(latency_ms: float) -> RequestOutcome:
    return RequestOutcome(kind=OutcomeKind.TIMEOUT, latency_ms=latency_ms)


def transport_error_outcome(exc: BaseException, latency_ms: float) -> RequestOutcome:
    return RequestOutcome(
        kind=OutcomeKind.TRANSPORT_ERROR,
        latency_ms=latency_ms,
        error=f"{type(exc).__name__}: {exc}",
    )


def describe_error_payload(body: bytes) -> str:
    """Summarise a short response body for the error tally.

    A JSON-RPC error object becomes ``"JSON-RPC error <code>: <message>"``.
    Anything else is described by an excerpt.
    """
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        excerpt = body[:_EXCERPT_CHARS].decode("utf-8", errors="replace")
        return f"Unparseable response ({len(body)} bytes): {excerpt!r}"

    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        error = data["error"]
        return f"JSON-RPC error {error.get('code')}: {error.get('message')}"

    excerpt = json.dumps(data, separators=(",", ":"))[:_EXCERPT_CHARS]
    return f"Short JSON-RPC response ({len(body)} bytes): {excerpt}"


def classify_response(
    response: RpcResponse,
    latency_ms: float,
    *,
    min_body_bytes: int,
) -> RequestOutcome:
    """Classify a response that arrived within the deadline.

    A 2xx response whose body is shorter than *min_body_bytes* is taken to
    be a compact JSON-RPC error rather than a real result.

    Args:
        response: What the transport returned.
        latency_ms: Time spent on the attempt.
        min_body_bytes: Smallest body that counts as a success.

    Returns:
        The classified outcome.
    """
    if not response.ok:
        reason = f" {response.reason}" if response.reason else ""
        return RequestOutcome(
            kind=OutcomeKind.HTTP_ERROR,
            latency_ms=latency_ms,
            error=f"HTTP error: {response.status}{reason}",
        )

    if response.body_length < min_body_bytes:
        return RequestOutcome(
            kind=OutcomeKind.PAYLOAD_ERROR,
            latency_ms=latency_ms,
            error=describe_error_payload(response.body),
        )

    return RequestOutcome(kind=OutcomeKind.SUCCESS, latency_ms=latency_ms)
